"""Tests for calsync/services/tokens.py"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from calsync.services.tokens import expires_within, token_expiry

from .conftest import make_token


class TestTokenExpiry:
    def test_reads_exp_claim(self):
        expiry = token_expiry(make_token(600))

        assert expiry is not None
        remaining = expiry - datetime.now(timezone.utc)
        assert timedelta(seconds=590) < remaining <= timedelta(seconds=600)

    def test_garbage_has_no_expiry(self):
        assert token_expiry(None) is None
        assert token_expiry("not-a-jwt") is None
        assert token_expiry("a.!!!.c") is None


class TestExpiresWithin:
    def test_token_inside_window(self):
        assert expires_within(make_token(30), timedelta(seconds=60))

    def test_token_outside_window(self):
        assert not expires_within(make_token(3600), timedelta(seconds=60))

    def test_expired_token(self):
        assert expires_within(make_token(-5), timedelta(0))

    def test_unreadable_token_counts_as_expiring(self):
        assert expires_within("opaque", timedelta(seconds=60))

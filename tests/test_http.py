"""Tests for the request pipeline in calsync/data/http.py"""

from __future__ import annotations

import httpx
import pytest

from calsync.data.http import ApiError, NetworkError, RequestAttempt

from .conftest import user_payload


class TestRequestAttempt:
    def test_default_budget_allows_one_retry(self):
        attempt = RequestAttempt()
        assert attempt.can_retry
        assert not attempt.spend().can_retry

    def test_final_attempt_has_no_budget(self):
        assert not RequestAttempt.final().can_retry
        assert RequestAttempt.final().spend().retries_left == 0


class TestBearerInjection:
    async def test_attaches_current_access_token(self, signed_in, backend):
        backend.add("GET", "/calendars", (200, []))

        await signed_in.api.get("/calendars")

        request = backend.calls("GET", "/calendars")[0]
        assert request.headers["Authorization"] == f"Bearer {signed_in.session.access_token}"

    async def test_unauthenticated_request_has_no_header(self, signed_in, backend):
        backend.add("POST", "/auth/guest", (200, {}))

        await signed_in.api.post("/auth/guest", authenticate=False)

        assert "Authorization" not in backend.calls("POST", "/auth/guest")[0].headers


class TestUnauthorizedRetry:
    async def test_refreshes_and_replays_once(self, signed_in, backend):
        refreshed = user_payload()
        backend.add("GET", "/calendars", (401, {"error": "expired"}), (200, [{"id": "c1", "name": "A"}]))
        backend.add("POST", "/auth/refresh", (200, refreshed))

        result = await signed_in.api.get("/calendars")

        assert result == [{"id": "c1", "name": "A"}]
        calls = backend.calls("GET", "/calendars")
        assert len(calls) == 2
        assert calls[1].headers["Authorization"] == f"Bearer {refreshed['accessToken']}"
        assert len(backend.calls("POST", "/auth/refresh")) == 1

    async def test_second_rejection_is_terminal(self, signed_in, backend):
        backend.add("GET", "/calendars", (401, {"error": "nope"}))
        backend.add("POST", "/auth/refresh", (200, user_payload()))

        with pytest.raises(ApiError) as excinfo:
            await signed_in.api.get("/calendars")

        assert excinfo.value.status_code == 401
        assert len(backend.calls("GET", "/calendars")) == 2
        assert len(backend.calls("POST", "/auth/refresh")) == 1

    async def test_final_attempt_is_not_retried(self, signed_in, backend):
        backend.add("POST", "/auth/logout", (401, None))

        with pytest.raises(ApiError):
            await signed_in.api.post("/auth/logout", attempt=RequestAttempt.final())

        assert backend.calls("POST", "/auth/refresh") == []

    async def test_forbidden_is_not_retried_by_default(self, signed_in, backend):
        backend.add("DELETE", "/calendars/c1", (403, {"error": "not owner"}))

        with pytest.raises(ApiError) as excinfo:
            await signed_in.api.delete("/calendars/c1")

        assert excinfo.value.is_forbidden
        assert len(backend.calls("DELETE", "/calendars/c1")) == 1
        assert backend.calls("POST", "/auth/refresh") == []


class TestErrors:
    async def test_error_message_comes_from_body(self, signed_in, backend):
        backend.add("POST", "/calendars", (422, {"message": "name required"}))

        with pytest.raises(ApiError) as excinfo:
            await signed_in.api.post("/calendars", json={"name": ""})

        assert excinfo.value.message == "name required"
        assert excinfo.value.payload == {"message": "name required"}

    async def test_transport_failure_becomes_network_error(self, signed_in, backend):
        backend.add("GET", "/calendars", httpx.ConnectError("connection refused"))

        with pytest.raises(NetworkError) as excinfo:
            await signed_in.api.get("/calendars")

        assert excinfo.value.status_code is None

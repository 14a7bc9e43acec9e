"""Tests for the composition root, background timers and profile actions."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from calsync.errors import NotAuthorized
from calsync.services.timers import PeriodicTask

from .conftest import guest_payload


class TestPeriodicTask:
    async def test_runs_until_stopped(self):
        ticks = 0
        ticked = asyncio.Event()

        async def tick():
            nonlocal ticks
            ticks += 1
            if ticks >= 2:
                ticked.set()

        task = PeriodicTask("test", timedelta(milliseconds=5), tick)
        task.start()
        await asyncio.wait_for(ticked.wait(), timeout=2)
        await task.stop()

        assert not task.running
        assert ticks >= 2

    async def test_failing_tick_does_not_stop_the_loop(self):
        calls = 0
        recovered = asyncio.Event()

        async def tick():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")
            recovered.set()

        task = PeriodicTask("flaky", timedelta(milliseconds=5), tick)
        task.start()
        await asyncio.wait_for(recovered.wait(), timeout=2)
        await task.stop()

        assert calls >= 2

    async def test_stop_without_start(self):
        await PeriodicTask("idle", timedelta(seconds=1), asyncio.sleep).stop()


class TestServiceContext:
    async def test_start_creates_guest_and_loads_calendars(self, context, backend):
        backend.add("POST", "/auth/guest", (200, guest_payload()))
        backend.add("GET", "/calendars", (200, [{"id": "c1", "name": "Public", "role": "guest"}]))

        await context.start()

        assert context.session.user.is_guest
        assert [c.id for c in context.sync.calendars] == ["c1"]

        await context.close()

        assert context.api._client.is_closed


class TestProfileService:
    async def test_guest_cannot_read_mentor_code(self, context, backend):
        backend.add("POST", "/auth/guest", (200, guest_payload()))
        await context.session.resume()

        with pytest.raises(NotAuthorized):
            await context.profile.mentor_code()

        assert backend.calls("GET", "/users/mentor-code") == []

    async def test_mentor_code_is_cached(self, signed_in, backend):
        backend.add("GET", "/users/mentor-code", (200, {"code": "M-1"}))
        backend.add("POST", "/users/regenerate-mentor-code", (200, {"code": "M-2"}))

        assert await signed_in.profile.mentor_code() == "M-1"
        assert await signed_in.profile.regenerate_mentor_code() == "M-2"
        assert signed_in.profile.cached_mentor_code() == "M-2"

"""Shared fixtures for calsync tests.

The server is simulated by :class:`FakeBackend`, an ``httpx.MockTransport``
handler that answers scripted responses per route and records every request.

Usage:
    async def test_something(context, backend):
        backend.add("POST", "/auth/guest", (200, guest_payload()))
        await context.session.resume()
"""

from __future__ import annotations

import base64
import itertools
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import orjson
import pytest

from calsync.config import ApiSettings, AppSettings, SessionSettings, StorageSettings, SyncSettings
from calsync.data.storage import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY
from calsync.services import ServiceContext

BASE_URL = "http://calsync.test/api"

Scripted = Union[Tuple[int, Any], Exception, Callable[[httpx.Request], httpx.Response]]

_jti = itertools.count(1)


# ─────────────────────────────────────────────────────────────────────────────
# Token and payload helpers
# ─────────────────────────────────────────────────────────────────────────────


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def make_token(expires_in: float = 3600, *, subject: str = "u1") -> str:
    """Unsigned JWT whose ``exp`` claim is ``expires_in`` seconds from now."""

    header = _b64(orjson.dumps({"alg": "HS256", "typ": "JWT"}))
    payload = _b64(orjson.dumps({"sub": subject, "exp": int(time.time() + expires_in), "jti": next(_jti)}))
    return f"{header}.{payload}.signature"


def guest_payload(user_id: str = "guest-1") -> Dict[str, Any]:
    return {
        "accessToken": make_token(subject=user_id),
        "refreshToken": f"refresh-{user_id}-{next(_jti)}",
        "user": {"id": user_id, "displayName": "Guest", "isGuest": True},
    }


def user_payload(user_id: str = "u1", username: str = "alice") -> Dict[str, Any]:
    return {
        "accessToken": make_token(subject=user_id),
        "refreshToken": f"refresh-{user_id}-{next(_jti)}",
        "user": {"id": user_id, "displayName": username.title(), "isGuest": False, "username": username},
    }


def body(request: httpx.Request) -> Any:
    return orjson.loads(request.content) if request.content else None


# ─────────────────────────────────────────────────────────────────────────────
# Fake backend
# ─────────────────────────────────────────────────────────────────────────────


class FakeBackend:
    """Scripted API. The last scripted response of a route repeats forever."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Scripted]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, *responses: Scripted) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def reset(self, method: str, path: str, *responses: Scripted) -> None:
        self.routes[(method, path)] = list(responses)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and _route_path(r) == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, _route_path(request)))
        if not queue:
            return httpx.Response(404, json={"error": "no such route"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        status, payload = item
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)


def _route_path(request: httpx.Request) -> str:
    path = request.url.path
    return path[len("/api"):] if path.startswith("/api") else path


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        api=ApiSettings(base_url=BASE_URL, timeout=5, retry_on_forbidden=False),
        session=SessionSettings(check_interval=timedelta(seconds=60), refresh_window=timedelta(seconds=60)),
        sync=SyncSettings(interval=timedelta(seconds=45)),
        storage=StorageSettings(state_file=tmp_path / "state.json"),
    )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def context(settings: AppSettings, backend: FakeBackend):
    ctx = ServiceContext(settings=settings, transport=httpx.MockTransport(backend.handler))
    yield ctx
    await ctx.close()


@pytest.fixture
async def signed_in(context: ServiceContext) -> ServiceContext:
    """Context resumed from a stored, still-valid authenticated session (no network)."""

    context.store.set_many(
        {
            ACCESS_TOKEN_KEY: make_token(3600),
            REFRESH_TOKEN_KEY: "stored-refresh",
            USER_KEY: {"id": "u1", "displayName": "Alice", "isGuest": False, "username": "alice"},
        }
    )
    await context.session.resume()
    return context

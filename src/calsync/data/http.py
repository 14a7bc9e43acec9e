from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx
import orjson

from ..config.settings import ApiSettings

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]
UnauthorizedHandler = Callable[[Optional[str]], Awaitable[None]]


class ApiError(RuntimeError):
    """Raised when the API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        payload = _decode(response)
        message = None
        if isinstance(payload, dict):
            message = payload.get("error") or payload.get("message") or payload.get("detail")
        if not message:
            message = f"{response.request.method} {response.request.url.path} failed with {response.status_code}"
        return cls(str(message), status_code=response.status_code, payload=payload)


class NetworkError(ApiError):
    """Raised when the request never produced a response."""


@dataclass(frozen=True)
class RequestAttempt:
    """Budget of unauthorized-retries left for one logical request."""

    retries_left: int = 1

    @classmethod
    def final(cls) -> "RequestAttempt":
        return cls(retries_left=0)

    @property
    def can_retry(self) -> bool:
        return self.retries_left > 0

    def spend(self) -> "RequestAttempt":
        return RequestAttempt(retries_left=max(self.retries_left - 1, 0))


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return orjson.loads(response.content)
    except orjson.JSONDecodeError:
        return response.text


class ApiClient:
    """HTTP pipeline that injects the bearer token and retries once after re-authentication."""

    def __init__(self, settings: ApiSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/"),
            timeout=settings.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._token_provider: TokenProvider = lambda: None
        self._unauthorized_handler: Optional[UnauthorizedHandler] = None

    def bind(self, token_provider: TokenProvider, unauthorized_handler: UnauthorizedHandler) -> None:
        self._token_provider = token_provider
        self._unauthorized_handler = unauthorized_handler

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        authenticate: bool = True,
        attempt: Optional[RequestAttempt] = None,
    ) -> Any:
        attempt = attempt or RequestAttempt()
        headers: Dict[str, str] = {}
        token = self._token_provider() if authenticate else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        content = None
        if json is not None:
            content = orjson.dumps(json)
            headers["Content-Type"] = "application/json"

        try:
            response = await self._client.request(method, path, content=content, params=params, headers=headers)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed before a response: %s", method, path, exc)
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if (
            response.status_code in self._settings.retry_statuses
            and authenticate
            and attempt.can_retry
            and self._unauthorized_handler is not None
        ):
            logger.info("%s %s returned %s; re-authenticating before one retry", method, path, response.status_code)
            await self._unauthorized_handler(token)
            return await self.request(
                method,
                path,
                json=json,
                params=params,
                authenticate=authenticate,
                attempt=attempt.spend(),
            )

        if response.is_error:
            error = ApiError.from_response(response)
            logger.debug("%s %s -> %s: %s", method, path, response.status_code, error.message)
            raise error
        return _decode(response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)


__all__ = ["ApiClient", "ApiError", "NetworkError", "RequestAttempt"]

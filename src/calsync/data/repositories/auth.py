from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..http import ApiClient, RequestAttempt


@dataclass(slots=True)
class AuthRepository:
    """Auth endpoints. None of them go through the unauthorized-retry path."""

    api: ApiClient

    async def guest(self) -> Dict[str, Any]:
        return await self.api.post("/auth/guest", authenticate=False, attempt=RequestAttempt.final())

    async def login(self, username: str, password: str) -> Dict[str, Any]:
        return await self.api.post(
            "/auth/login",
            json={"username": username, "password": password},
            authenticate=False,
            attempt=RequestAttempt.final(),
        )

    async def register(self, username: str, password: str) -> Dict[str, Any]:
        return await self.api.post(
            "/auth/register",
            json={"username": username, "password": password},
            authenticate=False,
            attempt=RequestAttempt.final(),
        )

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        return await self.api.post(
            "/auth/refresh",
            json={"refreshToken": refresh_token},
            authenticate=False,
            attempt=RequestAttempt.final(),
        )

    async def logout(self) -> None:
        await self.api.post("/auth/logout", attempt=RequestAttempt.final())

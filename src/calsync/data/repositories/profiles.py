from __future__ import annotations

from dataclasses import dataclass

from ..http import ApiClient


@dataclass(slots=True)
class ProfileRepository:
    api: ApiClient

    async def mentor_code(self) -> str:
        record = await self.api.get("/users/mentor-code") or {}
        return str(record.get("code") or "")

    async def regenerate_mentor_code(self) -> str:
        record = await self.api.post("/users/regenerate-mentor-code") or {}
        return str(record.get("code") or "")

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from ...domain import Calendar, CalendarMember, CalendarSettings
from ..http import ApiClient


@dataclass(slots=True)
class CalendarRepository:
    api: ApiClient

    async def fetch_all(self) -> List[Calendar]:
        records = await self.api.get("/calendars") or []
        return [Calendar.from_record(record) for record in records]

    async def create(self, name: str) -> Calendar:
        record = dict(await self.api.post("/calendars", json={"name": name}) or {})
        # the creator owns the calendar even when the response omits the role
        record.setdefault("role", "owner")
        record.setdefault("name", name)
        return Calendar.from_record(record)

    async def delete(self, calendar_id: str) -> None:
        await self.api.delete(f"/calendars/{calendar_id}")

    async def join(self, code: str) -> Dict[str, Any]:
        return await self.api.post("/calendars/join", json={"code": code}) or {}

    async def members(self, calendar_id: str) -> List[CalendarMember]:
        records = await self.api.get(f"/calendars/{calendar_id}/members") or []
        return [CalendarMember.from_record(record) for record in records]

    async def invite_code(self, calendar_id: str) -> str:
        record = await self.api.get(f"/calendars/{calendar_id}/invite") or {}
        return str(record.get("code") or "")

    async def regenerate_code(self, calendar_id: str) -> str:
        record = await self.api.post(f"/calendars/{calendar_id}/regenerate-code") or {}
        return str(record.get("code") or "")

    async def settings(self, calendar_id: str) -> CalendarSettings:
        record = await self.api.get(f"/calendars/{calendar_id}/settings") or {}
        return CalendarSettings.from_record(record)

    async def update_settings(self, calendar_id: str, settings: CalendarSettings) -> CalendarSettings:
        record = await self.api.put(f"/calendars/{calendar_id}/settings", json=settings.to_record())
        if isinstance(record, dict) and record:
            return CalendarSettings.from_record(record)
        return settings

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from ...domain import Event, SyncStatus
from ..http import ApiClient


@dataclass(slots=True)
class EventRepository:
    api: ApiClient

    async def list_for_calendar(self, calendar_id: str) -> List[Event]:
        records = await self.api.get(f"/calendars/{calendar_id}/events") or []
        return [Event.from_record(record, sync_status=SyncStatus.SYNCED) for record in records]

    async def create(self, calendar_id: str, event: Event) -> Event:
        payload = event.to_record()
        payload["calendar_id"] = calendar_id
        record = await self.api.post("/events", json=payload)
        return Event.from_record(record, sync_status=SyncStatus.SYNCED)

    async def update(self, event_id: str, changes: Dict[str, Any]) -> None:
        await self.api.put(f"/events/{event_id}", json=changes)

    async def delete(self, event_id: str) -> None:
        await self.api.delete(f"/events/{event_id}")

    async def clear_range(self, calendar_id: str, start: datetime, end: datetime) -> None:
        await self.api.post(
            "/events/clear-events",
            json={"calendarId": calendar_id, "start": start.isoformat(), "end": end.isoformat()},
        )

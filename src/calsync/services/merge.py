"""Reconciliation of cached calendar state with the server's authoritative copy."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Sequence

from ..domain import Calendar, Event, SyncStatus


def merge_events(server: Sequence[Event], local: Sequence[Event]) -> List[Event]:
    """Pending local events the server has not acknowledged, followed by the server's events.

    A pending event whose id shows up on the server is replaced by the server's
    version; synced local events are always superseded.
    """

    server_ids = {event.id for event in server}
    pending = [event for event in local if event.is_pending and event.id not in server_ids]
    confirmed = [replace(event, sync_status=SyncStatus.SYNCED) for event in server]
    return pending + confirmed


def merge_calendars(server: Sequence[Calendar], local: Sequence[Calendar]) -> List[Calendar]:
    """Exactly the server's calendars, each keeping the locally cached events when present."""

    local_by_id: Dict[str, Calendar] = {calendar.id: calendar for calendar in local}
    merged: List[Calendar] = []
    for calendar in server:
        cached = local_by_id.get(calendar.id)
        events = list(cached.events) if cached is not None else list(calendar.events)
        merged.append(replace(calendar, events=events))
    return merged

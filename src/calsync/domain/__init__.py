"""Domain models for calendars, events and sessions."""

from __future__ import annotations

from .dates import anchor_datetime, anchored_within, day_bounds, group_by_anchor_date
from .enums import EventType, Role, SyncStatus, Theme
from .ids import is_temp_id, new_temp_id
from .models import Calendar, CalendarMember, CalendarSettings, Event, Session, User

__all__ = [
    "Calendar",
    "CalendarMember",
    "CalendarSettings",
    "Event",
    "EventType",
    "Role",
    "Session",
    "SyncStatus",
    "Theme",
    "User",
    "anchor_datetime",
    "anchored_within",
    "day_bounds",
    "group_by_anchor_date",
    "is_temp_id",
    "new_temp_id",
]

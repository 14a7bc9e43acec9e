"""Repositories wrapping the REST endpoints for first-class domain objects."""

from __future__ import annotations

from .auth import AuthRepository
from .calendars import CalendarRepository
from .events import EventRepository
from .profiles import ProfileRepository

__all__ = ["AuthRepository", "CalendarRepository", "EventRepository", "ProfileRepository"]

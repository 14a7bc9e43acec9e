"""Application services: session lifecycle and calendar synchronisation."""

from __future__ import annotations

from .context import ServiceContext
from .merge import merge_calendars, merge_events
from .preferences import Preferences
from .profile import ProfileService
from .session import SessionManager
from .sync import SyncEngine

__all__ = [
    "Preferences",
    "ProfileService",
    "ServiceContext",
    "SessionManager",
    "SyncEngine",
    "merge_calendars",
    "merge_events",
]

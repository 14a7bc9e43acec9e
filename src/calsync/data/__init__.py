"""Data access layer."""

from __future__ import annotations

from .http import ApiClient, ApiError, NetworkError, RequestAttempt
from .snapshot import CalendarSnapshot
from .storage import KeyValueStore

__all__ = [
    "ApiClient",
    "ApiError",
    "CalendarSnapshot",
    "KeyValueStore",
    "NetworkError",
    "RequestAttempt",
]

"""Configuration models and helpers."""

from __future__ import annotations

from .settings import ApiSettings, AppSettings, SessionSettings, StorageSettings, SyncSettings, get_settings

__all__ = ["ApiSettings", "AppSettings", "SessionSettings", "StorageSettings", "SyncSettings", "get_settings"]

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    MENTOR = "mentor"
    EDITOR = "editor"
    MEMBER = "member"
    GUEST = "guest"

    @property
    def is_owner(self) -> bool:
        return self is Role.OWNER

    @classmethod
    def parse(cls, value: object) -> "Role":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.GUEST


class EventType(str, Enum):
    LABORATORY = "laboratory"
    CHECKPOINT = "checkpoint"
    FINAL = "final"
    MEETING = "meeting"
    CONFERENCE = "conference"
    EVENT = "event"
    COMMISSION = "commission"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "EventType":
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OTHER


class SyncStatus(str, Enum):
    PENDING = "pending"
    SYNCED = "synced"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    PINK = "pink"

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .enums import EventType, Role, SyncStatus


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Unsupported datetime value: {value!r}")


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _pick(record: Dict[str, Any], *names: str, default: Any = None) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return default


@dataclass(slots=True)
class User:
    id: str
    display_name: str
    is_guest: bool
    username: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "User":
        username = _pick(record, "username")
        return cls(
            id=str(record["id"]),
            display_name=str(_pick(record, "displayName", "display_name", default=username or "")),
            is_guest=bool(_pick(record, "isGuest", "is_guest", default=False)),
            username=username,
        )

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "id": self.id,
            "displayName": self.display_name,
            "isGuest": self.is_guest,
        }
        if self.username is not None:
            record["username"] = self.username
        return record


@dataclass(slots=True)
class Session:
    access_token: str
    refresh_token: str
    user: User

    @property
    def is_guest(self) -> bool:
        return self.user.is_guest


@dataclass(slots=True)
class CalendarSettings:
    mentor_visibility: bool = True
    allow_guests: bool = True

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CalendarSettings":
        return cls(
            mentor_visibility=bool(record.get("mentor_visibility", True)),
            allow_guests=bool(record.get("allow_guests", True)),
        )

    def to_record(self) -> Dict[str, Any]:
        return {"mentor_visibility": self.mentor_visibility, "allow_guests": self.allow_guests}


@dataclass(slots=True)
class Event:
    id: str
    title: str
    type: EventType = EventType.OTHER
    description: Optional[str] = None
    start_datetime: Optional[datetime] = None
    end_datetime: Optional[datetime] = None
    location: Optional[str] = None
    is_emergency: bool = False
    attach_to_end: bool = False
    links: List[str] = field(default_factory=list)
    sync_status: SyncStatus = SyncStatus.SYNCED
    calendar_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any], *, sync_status: Optional[SyncStatus] = None) -> "Event":
        status = sync_status or SyncStatus(record.get("sync_status") or SyncStatus.SYNCED)
        calendar_id = _pick(record, "calendar_id", "calendarId")
        return cls(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            type=EventType.parse(record.get("type")),
            description=record.get("description"),
            start_datetime=_parse_datetime(record.get("start_datetime")),
            end_datetime=_parse_datetime(record.get("end_datetime")),
            location=record.get("location"),
            is_emergency=bool(record.get("is_emergency", False)),
            attach_to_end=bool(record.get("attach_to_end", False)),
            links=[str(link) for link in record.get("links") or [] if link],
            sync_status=status,
            calendar_id=str(calendar_id) if calendar_id is not None else None,
        )

    def to_record(self) -> Dict[str, Any]:
        """Payload in the shape the events endpoints accept."""

        return {
            "title": self.title,
            "type": self.type.value,
            "description": self.description,
            "start_datetime": _format_datetime(self.start_datetime),
            "end_datetime": _format_datetime(self.end_datetime),
            "location": self.location,
            "is_emergency": self.is_emergency,
            "attach_to_end": self.attach_to_end,
            "links": list(self.links),
        }

    def to_snapshot(self) -> Dict[str, Any]:
        record = self.to_record()
        record["id"] = self.id
        record["sync_status"] = self.sync_status.value
        if self.calendar_id is not None:
            record["calendar_id"] = self.calendar_id
        return record

    @property
    def is_pending(self) -> bool:
        return self.sync_status is SyncStatus.PENDING


@dataclass(slots=True)
class Calendar:
    id: str
    name: str
    role: Role = Role.GUEST
    events: List[Event] = field(default_factory=list)
    owner_id: Optional[str] = None
    settings: Optional[CalendarSettings] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Calendar":
        owner_id = _pick(record, "owner_id", "ownerId")
        settings = record.get("settings")
        return cls(
            id=str(record["id"]),
            name=str(record.get("name") or ""),
            role=Role.parse(record.get("role")),
            events=[Event.from_record(item) for item in record.get("events") or []],
            owner_id=str(owner_id) if owner_id is not None else None,
            settings=CalendarSettings.from_record(settings) if isinstance(settings, dict) else None,
        )

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value,
            "owner_id": self.owner_id,
            "settings": self.settings.to_record() if self.settings else None,
            "events": [event.to_snapshot() for event in self.events],
        }


@dataclass(slots=True)
class CalendarMember:
    user_id: str
    display_name: str
    role: Role

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CalendarMember":
        user_id = _pick(record, "userId", "user_id", "id")
        return cls(
            user_id=str(user_id),
            display_name=str(_pick(record, "displayName", "display_name", "username", default="")),
            role=Role.parse(record.get("role")),
        )

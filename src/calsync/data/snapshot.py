from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from ..domain import Calendar
from .storage import CALENDARS_KEY, KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CalendarSnapshot:
    """Last known calendar list, kept for offline bootstrap."""

    store: KeyValueStore

    def load(self) -> List[Calendar]:
        records = self.store.get(CALENDARS_KEY)
        if not records:
            return []
        try:
            return [Calendar.from_record(record) for record in records]
        except (KeyError, TypeError, ValueError):
            logger.exception("Stored calendar snapshot is unreadable; ignoring it.")
            return []

    def save(self, calendars: Sequence[Calendar]) -> None:
        self.store.set(CALENDARS_KEY, [calendar.to_snapshot() for calendar in calendars])

    def clear(self) -> None:
        self.store.remove(CALENDARS_KEY)

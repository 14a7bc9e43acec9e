from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Event

_END_OF_DAY = time(23, 59, 59, 999000)


def anchor_datetime(event: Event) -> Optional[datetime]:
    """Datetime used to place ``event`` on a day: the end when attached to it, else the start."""

    if event.attach_to_end and event.end_datetime is not None:
        return event.end_datetime
    return event.start_datetime


def to_local(value: datetime) -> datetime:
    """Aware local-time view of ``value``; naive values are taken as local already."""

    return value.astimezone()


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Local ``[00:00:00.000, 23:59:59.999]`` window for ``day`` as aware datetimes."""

    start = datetime.combine(day, time.min).astimezone()
    end = datetime.combine(day, _END_OF_DAY).astimezone()
    return start, end


def anchored_within(event: Event, start: datetime, end: datetime) -> bool:
    anchor = anchor_datetime(event)
    if anchor is None:
        return False
    return start <= to_local(anchor) <= end


def group_by_anchor_date(events: Iterable[Event]) -> Dict[date, List[Event]]:
    grouped: Dict[date, List[Event]] = {}
    for event in events:
        anchor = anchor_datetime(event)
        if anchor is None:
            continue
        grouped.setdefault(to_local(anchor).date(), []).append(event)
    for bucket in grouped.values():
        bucket.sort(key=lambda item: to_local(anchor_datetime(item)))  # type: ignore[arg-type]
    return grouped

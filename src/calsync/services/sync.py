from __future__ import annotations

import asyncio
import logging
from copy import deepcopy
from dataclasses import replace
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..config.settings import SyncSettings
from ..data.http import ApiClient, ApiError
from ..data.repositories import CalendarRepository, EventRepository
from ..data.snapshot import CalendarSnapshot
from ..domain import (
    Calendar,
    CalendarMember,
    CalendarSettings,
    Event,
    Role,
    SyncStatus,
    anchored_within,
    day_bounds,
    group_by_anchor_date,
    is_temp_id,
    new_temp_id,
)
from ..errors import (
    AuthError,
    CalendarDeleteFailed,
    CalendarNotFound,
    JoinCalendarFailed,
    NotAuthorized,
    PermissionDenied,
)
from .merge import merge_calendars, merge_events
from .session import SessionManager
from .timers import PeriodicTask

logger = logging.getLogger(__name__)

CalendarsUpdater = Callable[[List[Calendar]], List[Calendar]]
EventData = Union[Event, Mapping[str, Any]]


class SyncEngine:
    """In-memory calendar list with optimistic mutations reconciled against the server.

    Every change to the list goes through :meth:`update_calendars`, which also
    writes the snapshot used for offline bootstrap.
    """

    def __init__(
        self,
        api: ApiClient,
        session: SessionManager,
        snapshot: CalendarSnapshot,
        settings: SyncSettings,
    ) -> None:
        self._calendars_repo = CalendarRepository(api)
        self._events_repo = EventRepository(api)
        self._session = session
        self._snapshot = snapshot
        self._calendars: List[Calendar] = []
        self._disposed = False
        self._timer = PeriodicTask("calendar-resync", settings.interval, self.sync_calendars)

    @property
    def calendars(self) -> List[Calendar]:
        return list(self._calendars)

    def calendar(self, calendar_id: str) -> Optional[Calendar]:
        for calendar in self._calendars:
            if calendar.id == calendar_id:
                return calendar
        return None

    def events_by_day(self, calendar_id: str) -> Dict[date, List[Event]]:
        calendar = self.calendar(calendar_id)
        if calendar is None:
            return {}
        return group_by_anchor_date(calendar.events)

    def update_calendars(self, updater: CalendarsUpdater) -> List[Calendar]:
        if self._disposed:
            logger.debug("Ignoring calendar update after the engine was stopped")
            return self.calendars
        updated = list(updater(list(self._calendars)))
        self._calendars = updated
        self._snapshot.save(updated)
        return list(updated)

    def start(self) -> None:
        self._disposed = False
        self._timer.start()

    async def stop(self) -> None:
        self._disposed = True
        await self._timer.stop()

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def bootstrap(self) -> List[Calendar]:
        """Combine the stored snapshot with the server list, degrading to the snapshot when offline."""

        async def _load_snapshot() -> List[Calendar]:
            return self._snapshot.load()

        local_result, server_result = await asyncio.gather(
            _load_snapshot(),
            self._calendars_repo.fetch_all(),
            return_exceptions=True,
        )
        local: List[Calendar] = []
        if isinstance(local_result, Exception):
            logger.warning("Could not read the calendar snapshot: %s", local_result)
        elif isinstance(local_result, list):
            local = local_result

        if isinstance(server_result, Exception):
            logger.warning("Calendar fetch failed during bootstrap; using the stored snapshot: %s", server_result)
            merged = local
        else:
            merged = merge_calendars(server_result, local)
        return self.update_calendars(lambda _: merged)

    async def sync_calendars(self) -> List[Calendar]:
        try:
            return await self._sync_once()
        except ApiError as exc:
            if not exc.is_auth_failure:
                raise
            logger.info("Calendar sync was rejected (%s); refreshing the session and retrying", exc.status_code)

        try:
            await self._session.refresh_session()
            return await self._sync_once()
        except (AuthError, ApiError) as exc:
            if isinstance(exc, ApiError) and not exc.is_auth_failure:
                raise
            if self._session.is_authenticated:
                logger.warning("Calendar sync failed after refresh; falling back to guest")
                await self._session.reset_to_guest()
            raise

    async def _sync_once(self) -> List[Calendar]:
        server = await self._calendars_repo.fetch_all()
        merged = self.update_calendars(lambda current: merge_calendars(server, current))
        results = await asyncio.gather(
            *(self.sync_events(calendar.id) for calendar in merged),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, Exception)]
        for failure in failures:
            logger.warning("Event sync failed: %s", failure)
        if failures:
            raise failures[0]
        return self.calendars

    async def sync_events(self, calendar_id: str) -> List[Event]:
        if is_temp_id(calendar_id):
            return []
        server = await self._events_repo.list_for_calendar(calendar_id)

        def _merge(calendars: List[Calendar]) -> List[Calendar]:
            return [
                replace(calendar, events=merge_events(server, calendar.events)) if calendar.id == calendar_id else calendar
                for calendar in calendars
            ]

        self.update_calendars(_merge)
        calendar = self.calendar(calendar_id)
        return list(calendar.events) if calendar else []

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    async def add_calendar(self, name: str) -> Calendar:
        user = self._session.user
        if user is None or user.is_guest:
            raise NotAuthorized("Guests cannot create calendars.")

        temp_id = new_temp_id()
        placeholder = Calendar(id=temp_id, name=name, role=Role.OWNER, owner_id=user.id)
        self.update_calendars(lambda calendars: calendars + [placeholder])

        try:
            created = await self._calendars_repo.create(name)
        except Exception as exc:
            logger.warning("Creating calendar %r failed; rolling back", name)
            self.update_calendars(lambda calendars: [c for c in calendars if c.id != temp_id])
            if isinstance(exc, ApiError) and exc.is_forbidden:
                raise PermissionDenied(exc.message) from exc
            raise

        def _swap(calendars: List[Calendar]) -> List[Calendar]:
            if any(c.id == temp_id for c in calendars):
                return [replace(created, events=list(c.events)) if c.id == temp_id else c for c in calendars]
            if any(c.id == created.id for c in calendars):
                return calendars
            return calendars + [created]

        self.update_calendars(_swap)
        logger.info("Calendar %s confirmed as %s", temp_id, created.id)
        return self.calendar(created.id) or created

    async def delete_calendar(self, calendar_id: str) -> None:
        calendar = self.calendar(calendar_id)
        if calendar is None:
            raise CalendarNotFound(f"Calendar {calendar_id} is not loaded.")
        if not calendar.role.is_owner:
            raise NotAuthorized("Only the owner can delete a calendar.")

        backup = deepcopy(self._calendars)
        self.update_calendars(lambda calendars: [c for c in calendars if c.id != calendar_id])
        try:
            await self._calendars_repo.delete(calendar_id)
        except Exception as exc:
            logger.warning("Deleting calendar %s failed; restoring", calendar_id)
            self.update_calendars(lambda _: backup)
            if not isinstance(exc, ApiError):
                raise
            if exc.is_forbidden:
                try:
                    await self.sync_calendars()
                except (AuthError, ApiError):
                    logger.exception("Re-sync after a refused delete failed")
                raise PermissionDenied(exc.message) from exc
            raise CalendarDeleteFailed(exc.message, server_message=_server_message(exc)) from exc

    async def join_calendar(self, code: str) -> Optional[str]:
        try:
            result = await self._calendars_repo.join(code)
        except ApiError as exc:
            raise JoinCalendarFailed(f"Could not join with code: {exc.message}", status_code=exc.status_code) from exc
        await self.sync_calendars()
        if not isinstance(result, dict):
            return None
        calendar_id = result.get("calendarId") or result.get("calendar_id")
        return str(calendar_id) if calendar_id is not None else None

    async def list_members(self, calendar_id: str) -> List[CalendarMember]:
        return await self._calendars_repo.members(calendar_id)

    async def get_invite_code(self, calendar_id: str) -> str:
        return await self._calendars_repo.invite_code(calendar_id)

    async def regenerate_invite_code(self, calendar_id: str) -> str:
        return await self._calendars_repo.regenerate_code(calendar_id)

    async def get_calendar_settings(self, calendar_id: str) -> CalendarSettings:
        return await self._calendars_repo.settings(calendar_id)

    async def update_calendar_settings(self, calendar_id: str, settings: CalendarSettings) -> CalendarSettings:
        saved = await self._calendars_repo.update_settings(calendar_id, settings)
        self.update_calendars(
            lambda calendars: [replace(c, settings=saved) if c.id == calendar_id else c for c in calendars]
        )
        return saved

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def add_event(self, calendar_id: str, event_data: EventData) -> Event:
        if self.calendar(calendar_id) is None:
            raise CalendarNotFound(f"Calendar {calendar_id} is not loaded.")

        temp_id = new_temp_id()
        if isinstance(event_data, Event):
            pending = replace(event_data, id=temp_id, sync_status=SyncStatus.PENDING, calendar_id=calendar_id)
        else:
            pending = Event.from_record({**event_data, "id": temp_id, "calendar_id": calendar_id}, sync_status=SyncStatus.PENDING)

        self.update_calendars(
            lambda calendars: [
                replace(c, events=c.events + [pending]) if c.id == calendar_id else c for c in calendars
            ]
        )

        try:
            created = await self._events_repo.create(calendar_id, pending)
            if created.calendar_id is None:
                created = replace(created, calendar_id=calendar_id)
        except Exception as exc:
            logger.warning("Creating event in %s failed; rolling back", calendar_id)
            self.update_calendars(
                lambda calendars: [
                    replace(c, events=[e for e in c.events if e.id != temp_id]) if c.id == calendar_id else c
                    for c in calendars
                ]
            )
            if isinstance(exc, ApiError) and exc.is_forbidden:
                raise PermissionDenied(exc.message) from exc
            raise

        def _confirm(calendars: List[Calendar]) -> List[Calendar]:
            updated: List[Calendar] = []
            for calendar in calendars:
                if calendar.id != calendar_id:
                    updated.append(calendar)
                    continue
                if any(e.id == temp_id for e in calendar.events):
                    events = [created if e.id == temp_id else e for e in calendar.events]
                elif any(e.id == created.id for e in calendar.events):
                    events = list(calendar.events)
                else:
                    events = calendar.events + [created]
                updated.append(replace(calendar, events=events))
            return updated

        self.update_calendars(_confirm)
        return created

    async def update_event(self, calendar_id: str, event_id: str, changes: EventData) -> List[Event]:
        payload = changes.to_record() if isinstance(changes, Event) else dict(changes)
        try:
            await self._events_repo.update(event_id, payload)
        except ApiError as exc:
            if exc.is_forbidden:
                await self._resync_quietly(calendar_id)
                raise PermissionDenied(exc.message) from exc
            raise
        return await self.sync_events(calendar_id)

    async def delete_event(self, calendar_id: str, event_id: str) -> List[Event]:
        try:
            await self._events_repo.delete(event_id)
        except ApiError as exc:
            if exc.is_forbidden:
                await self._resync_quietly(calendar_id)
                raise PermissionDenied(exc.message) from exc
            raise
        return await self.sync_events(calendar_id)

    async def clear_date_events(self, calendar_id: str, day: date) -> int:
        """Delete every event of ``calendar_id`` anchored on ``day``. Returns how many were removed locally."""

        start, end = day_bounds(day)
        await self._events_repo.clear_range(calendar_id, start, end)

        removed = 0

        def _clear(calendars: List[Calendar]) -> List[Calendar]:
            nonlocal removed
            updated: List[Calendar] = []
            for calendar in calendars:
                if calendar.id != calendar_id:
                    updated.append(calendar)
                    continue
                kept = [e for e in calendar.events if not anchored_within(e, start, end)]
                removed = len(calendar.events) - len(kept)
                updated.append(replace(calendar, events=kept))
            return updated

        self.update_calendars(_clear)
        logger.info("Cleared %d events from %s on %s", removed, calendar_id, day.isoformat())
        return removed

    async def _resync_quietly(self, calendar_id: str) -> None:
        try:
            await self.sync_events(calendar_id)
        except (AuthError, ApiError):
            logger.exception("Re-sync of %s after a refused change failed", calendar_id)


def _server_message(exc: ApiError) -> Optional[str]:
    if isinstance(exc.payload, dict):
        message = exc.payload.get("error") or exc.payload.get("message")
        return str(message) if message else None
    return None


__all__ = ["SyncEngine"]

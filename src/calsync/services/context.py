from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from ..config import AppSettings, get_settings
from ..data import ApiClient, CalendarSnapshot, KeyValueStore
from .preferences import Preferences
from .profile import ProfileService
from .session import SessionManager
from .sync import SyncEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ServiceContext:
    """Composition root: one store, one HTTP pipeline, one session and one sync engine per process."""

    settings: AppSettings = field(default_factory=get_settings)
    transport: Optional[httpx.AsyncBaseTransport] = None
    store: KeyValueStore = field(init=False)
    api: ApiClient = field(init=False)
    session: SessionManager = field(init=False)
    sync: SyncEngine = field(init=False)
    preferences: Preferences = field(init=False)
    profile: ProfileService = field(init=False)

    def __post_init__(self) -> None:
        self.store = KeyValueStore(self.settings.storage.state_file)
        self.api = ApiClient(self.settings.api, transport=self.transport)
        self.session = SessionManager(self.api, self.store, self.settings.session)
        self.sync = SyncEngine(self.api, self.session, CalendarSnapshot(self.store), self.settings.sync)
        self.preferences = Preferences(self.store)
        self.profile = ProfileService(self.api, self.session, self.store)

    async def start(self) -> None:
        """Establish a session, load calendars and start the background timers."""

        session = await self.session.resume()
        logger.info("Session ready (guest=%s)", session.is_guest)
        await self.sync.bootstrap()
        self.session.start()
        self.sync.start()

    async def close(self) -> None:
        await self.sync.stop()
        await self.session.stop()
        await self.api.aclose()

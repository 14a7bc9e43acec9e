from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..data.http import ApiClient
from ..data.repositories import ProfileRepository
from ..data.storage import MENTOR_CODE_KEY, KeyValueStore
from ..errors import NotAuthorized
from .session import SessionManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProfileService:
    """Account-level actions of a signed-in user."""

    api: ApiClient
    session: SessionManager
    store: KeyValueStore

    def _repository(self) -> ProfileRepository:
        if not self.session.is_authenticated:
            raise NotAuthorized("Mentor codes require a signed-in account.")
        return ProfileRepository(self.api)

    def cached_mentor_code(self) -> Optional[str]:
        return self.store.get(MENTOR_CODE_KEY)

    async def mentor_code(self) -> str:
        code = await self._repository().mentor_code()
        self.store.set(MENTOR_CODE_KEY, code)
        return code

    async def regenerate_mentor_code(self) -> str:
        code = await self._repository().regenerate_mentor_code()
        self.store.set(MENTOR_CODE_KEY, code)
        logger.info("Mentor code regenerated")
        return code

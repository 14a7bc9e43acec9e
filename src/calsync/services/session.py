from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from ..config.settings import SessionSettings
from ..data.http import ApiClient, ApiError
from ..data.repositories import AuthRepository
from ..data.storage import (
    ACCESS_TOKEN_KEY,
    AUTH_KEYS,
    CALENDARS_KEY,
    MENTOR_CODE_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    KeyValueStore,
)
from ..domain import Session, User
from ..errors import (
    AuthError,
    GuestSessionUnavailable,
    InvalidCredentials,
    InvalidTokenResponse,
    RefreshTokenMissing,
    RegistrationFailed,
    SessionRefreshFailed,
)
from .timers import PeriodicTask
from .tokens import expires_within

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Owns the token pair and keeps exactly one usable session alive.

    The manager binds itself to the :class:`ApiClient` so that every outbound
    request carries the current access token, and a rejected token triggers
    one refresh before the request is replayed.
    """

    def __init__(
        self,
        api: ApiClient,
        store: KeyValueStore,
        settings: SessionSettings,
        *,
        clock: Clock = _utc_now,
    ) -> None:
        self._auth = AuthRepository(api)
        self._store = store
        self._settings = settings
        self._clock = clock
        self._session: Optional[Session] = None
        self._refresh_lock = asyncio.Lock()
        self._timer = PeriodicTask("session-expiry-check", settings.check_interval, self.check_expiry)
        api.bind(lambda: self.access_token, self._handle_unauthorized)

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and not self._session.is_guest

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def resume(self) -> Session:
        """Restore the persisted session, refreshing or falling back to a guest as needed."""

        refresh_token = self._store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            logger.info("No stored refresh token; starting a guest session")
            return await self.create_guest_session()

        access_token = self._store.get(ACCESS_TOKEN_KEY)
        user_record = self._store.get(USER_KEY)
        if access_token and isinstance(user_record, dict) and not expires_within(
            access_token, timedelta(0), now=self._clock()
        ):
            session = Session(access_token=access_token, refresh_token=refresh_token, user=User.from_record(user_record))
            self._apply(session, persist=False)
            logger.info("Resumed stored session for user %s", session.user.id)
            return session

        try:
            async with self._refresh_lock:
                return await self._refresh()
        except AuthError:
            if self._session is not None and self._session.is_guest:
                return self._session
            logger.warning("Stored session could not be refreshed; switching to guest")
            return await self.reset_to_guest()

    def start(self) -> None:
        self._timer.start()

    async def stop(self) -> None:
        await self._timer.stop()

    # ------------------------------------------------------------------
    # Explicit user actions
    # ------------------------------------------------------------------

    async def login(self, username: str, password: str) -> Session:
        try:
            payload = await self._auth.login(username, password)
        except ApiError as exc:
            if exc.is_client_error:
                raise InvalidCredentials(exc.message) from exc
            raise
        session = self._session_from_payload(payload)
        self._apply(session)
        logger.info("Signed in as %s", session.user.id)
        return session

    async def register(self, username: str, password: str) -> Session:
        try:
            payload = await self._auth.register(username, password)
        except ApiError as exc:
            if exc.status_code == 409:
                raise RegistrationFailed(exc.message, username_taken=True) from exc
            if exc.is_client_error:
                raise RegistrationFailed(exc.message) from exc
            raise
        session = self._session_from_payload(payload)
        self._apply(session)
        logger.info("Registered and signed in as %s", session.user.id)
        return session

    async def logout(self) -> Session:
        try:
            await self._auth.logout()
        except ApiError as exc:
            logger.warning("Server-side logout failed: %s", exc.message)
        self._store.remove_many((CALENDARS_KEY, MENTOR_CODE_KEY))
        return await self.reset_to_guest()

    async def refresh_session(self) -> Session:
        async with self._refresh_lock:
            return await self._refresh()

    async def create_guest_session(self) -> Session:
        try:
            payload = await self._auth.guest()
        except ApiError as exc:
            logger.error("Guest session could not be created: %s", exc.message)
            raise GuestSessionUnavailable(exc.message) from exc
        session = self._session_from_payload(payload)
        self._apply(session)
        logger.info("Guest session started for %s", session.user.id)
        return session

    async def reset_to_guest(self) -> Session:
        self._clear()
        return await self.create_guest_session()

    # ------------------------------------------------------------------
    # Background and pipeline hooks
    # ------------------------------------------------------------------

    async def check_expiry(self) -> bool:
        """One expiry-timer tick. Returns True when a refresh happened."""

        session = self._session
        if session is None or session.is_guest:
            return False
        if not expires_within(session.access_token, self._settings.refresh_window, now=self._clock()):
            return False
        logger.info("Access token expires soon; refreshing")
        try:
            await self.refresh_session()
        except (AuthError, ApiError):
            logger.exception("Background token refresh failed")
            if self._session is None or not self._session.is_guest:
                try:
                    await self.reset_to_guest()
                except AuthError:
                    logger.exception("Guest fallback after background refresh failed")
            return False
        return True

    async def _handle_unauthorized(self, rejected_token: Optional[str]) -> None:
        async with self._refresh_lock:
            if self._session is not None and self._session.access_token != rejected_token:
                logger.debug("Token already rotated by a concurrent refresh; replaying")
                return
            await self._refresh()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _refresh(self) -> Session:
        refresh_token = self._store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            logger.info("Refresh requested without a refresh token; falling back to guest")
            await self.create_guest_session()
            raise RefreshTokenMissing("No refresh token is stored.")

        try:
            payload = await self._auth.refresh(refresh_token)
        except ApiError as exc:
            if exc.is_client_error:
                logger.warning("Refresh token rejected (%s); falling back to guest", exc.status_code)
                self._clear()
                await self.create_guest_session()
            raise SessionRefreshFailed(exc.message) from exc

        current_user = self.user
        if current_user is None and isinstance(self._store.get(USER_KEY), dict):
            current_user = User.from_record(self._store.get(USER_KEY))
        session = self._session_from_payload(payload, fallback_user=current_user)
        self._apply(session)
        logger.info("Session refreshed for %s", session.user.id)
        return session

    def _session_from_payload(self, payload: Any, *, fallback_user: Optional[User] = None) -> Session:
        if not isinstance(payload, dict):
            raise InvalidTokenResponse("Auth response is not an object.")
        access_token = payload.get("accessToken")
        refresh_token = payload.get("refreshToken")
        if not access_token or not refresh_token:
            raise InvalidTokenResponse("Auth response is missing a token.")
        user_record: Optional[Dict[str, Any]] = payload.get("user")
        if isinstance(user_record, dict):
            user = User.from_record(user_record)
        elif fallback_user is not None:
            user = fallback_user
        else:
            raise InvalidTokenResponse("Auth response is missing the user.")
        return Session(access_token=str(access_token), refresh_token=str(refresh_token), user=user)

    def _apply(self, session: Session, *, persist: bool = True) -> None:
        self._session = session
        if persist:
            self._store.set_many(
                {
                    ACCESS_TOKEN_KEY: session.access_token,
                    REFRESH_TOKEN_KEY: session.refresh_token,
                    USER_KEY: session.user.to_record(),
                }
            )

    def _clear(self) -> None:
        self._session = None
        self._store.remove_many(AUTH_KEYS)


__all__ = ["SessionManager"]

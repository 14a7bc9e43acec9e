"""Exception taxonomy surfaced to the UI layer.

Every error carries a ``user_message`` suitable for display; the exception
text itself is meant for logs.
"""

from __future__ import annotations

from typing import Optional


class CalsyncError(RuntimeError):
    """Base class for errors raised by the session and sync core."""

    user_message = "Something went wrong. Please try again."


class AuthError(CalsyncError):
    """Session could not be established or kept alive."""

    user_message = "Please sign in again."


class InvalidCredentials(AuthError):
    user_message = "Invalid username or password."


class RegistrationFailed(AuthError):
    def __init__(self, message: str, *, username_taken: bool = False) -> None:
        super().__init__(message)
        self.username_taken = username_taken

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.username_taken:
            return "This username is already taken."
        return "Registration failed."


class RefreshTokenMissing(AuthError):
    """No refresh token is stored, so the session cannot be renewed."""


class InvalidTokenResponse(AuthError):
    """The auth endpoint answered without a usable token pair."""


class SessionRefreshFailed(AuthError):
    """The refresh endpoint rejected the stored refresh token."""


class GuestSessionUnavailable(AuthError):
    """No guest session could be created; the client has no usable identity."""

    user_message = "Could not connect to the server."


class SyncError(CalsyncError):
    """A calendar or event operation failed."""


class NotAuthorized(SyncError):
    """The current user may not perform the operation (checked client-side)."""

    user_message = "You don't have permission to do that."


class PermissionDenied(SyncError):
    """The server refused the operation with 403."""

    user_message = "You don't have permission to do that."


class CalendarNotFound(SyncError):
    user_message = "This calendar no longer exists."


class CalendarDeleteFailed(SyncError):
    def __init__(self, message: str, *, server_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.server_message = server_message

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.server_message:
            return f"Could not delete the calendar: {self.server_message}"
        return "Could not delete the calendar."


class JoinCalendarFailed(SyncError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.status_code == 403:
            return "Guests cannot join this calendar."
        if self.status_code == 404:
            return "Invalid or expired code."
        return "Could not join the calendar."

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta, timezone
from typing import Optional

import orjson


def token_expiry(token: Optional[str]) -> Optional[datetime]:
    """Read the ``exp`` claim of a JWT without verifying its signature."""

    if not token:
        return None
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = orjson.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(claims, dict):
        return None
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return None
    return datetime.fromtimestamp(exp, tz=timezone.utc)


def expires_within(token: Optional[str], window: timedelta, *, now: Optional[datetime] = None) -> bool:
    """True when ``token`` is unreadable or expires less than ``window`` after ``now``."""

    expiry = token_expiry(token)
    if expiry is None:
        return True
    current = now or datetime.now(timezone.utc)
    return expiry - current <= window

from __future__ import annotations

import itertools
import time

TEMP_ID_PREFIX = "temp_"

_sequence = itertools.count()


def new_temp_id() -> str:
    """Return a client-local id that can never collide with a server id."""

    stamp = int(time.time() * 1000)
    return f"{TEMP_ID_PREFIX}{stamp}{next(_sequence):04d}"


def is_temp_id(identifier: str) -> bool:
    return identifier.startswith(TEMP_ID_PREFIX)

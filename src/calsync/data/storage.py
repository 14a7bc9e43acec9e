from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

import orjson

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "@access_token"
REFRESH_TOKEN_KEY = "@refresh_token"
USER_KEY = "@user"
CALENDARS_KEY = "@calendars"
THEME_KEY = "@theme"
MENTOR_CODE_KEY = "@mentor_code"

AUTH_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY)


class KeyValueStore:
    """Persisted key-value document backing tokens, the user and the calendar snapshot."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._state: Optional[Dict[str, Any]] = None

    def _ensure_materialized(self) -> Dict[str, Any]:
        if self._state is not None:
            return self._state
        if not self._path.exists():
            self._state = {}
            return self._state
        raw = self._path.read_bytes()
        if not raw:
            self._state = {}
            return self._state
        try:
            loaded = orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning("State file %s is corrupt; starting from an empty store.", self._path)
            loaded = {}
        self._state = loaded if isinstance(loaded, dict) else {}
        return self._state

    def _persist(self) -> None:
        if self._state is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = orjson.dumps(self._state, option=orjson.OPT_INDENT_2)
        self._path.write_bytes(payload + b"\n")

    def mutate(self, callback: Callable[[Dict[str, Any]], Any]) -> Any:
        state = self._ensure_materialized()
        result = callback(state)
        self._persist()
        return result

    def get(self, key: str, default: Any = None) -> Any:
        return self._ensure_materialized().get(key, default)

    def set(self, key: str, value: Any) -> None:
        def _assign(state: Dict[str, Any]) -> None:
            state[key] = value

        self.mutate(_assign)

    def set_many(self, values: Mapping[str, Any]) -> None:
        def _assign(state: Dict[str, Any]) -> None:
            state.update(values)

        self.mutate(_assign)

    def remove(self, key: str) -> None:
        self.remove_many((key,))

    def remove_many(self, keys: Iterable[str]) -> None:
        def _drop(state: Dict[str, Any]) -> None:
            for key in keys:
                state.pop(key, None)

        self.mutate(_drop)


__all__ = [
    "ACCESS_TOKEN_KEY",
    "AUTH_KEYS",
    "CALENDARS_KEY",
    "KeyValueStore",
    "MENTOR_CODE_KEY",
    "REFRESH_TOKEN_KEY",
    "THEME_KEY",
    "USER_KEY",
]

from __future__ import annotations

from dataclasses import dataclass

from ..data.storage import THEME_KEY, KeyValueStore
from ..domain import Theme


@dataclass(slots=True)
class Preferences:
    store: KeyValueStore

    def theme(self) -> Theme:
        raw = self.store.get(THEME_KEY)
        try:
            return Theme(raw) if raw else Theme.LIGHT
        except ValueError:
            return Theme.LIGHT

    def set_theme(self, theme: Theme) -> None:
        self.store.set(THEME_KEY, Theme(theme).value)

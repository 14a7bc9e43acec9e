"""Tests for persisted client state: calsync/data/storage.py, snapshot.py and preferences."""

from __future__ import annotations

import logging

from calsync.bootstrap import configure_logging
from calsync.data.snapshot import CalendarSnapshot
from calsync.data.storage import CALENDARS_KEY, THEME_KEY, KeyValueStore
from calsync.domain import Calendar, Role, Theme
from calsync.services.preferences import Preferences


class TestKeyValueStore:
    def test_values_survive_a_new_instance(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        KeyValueStore(path).set_many({"@a": "1", "@b": {"x": 2}})

        reopened = KeyValueStore(path)

        assert reopened.get("@a") == "1"
        assert reopened.get("@b") == {"x": 2}

    def test_remove_many_ignores_missing_keys(self, tmp_path):
        store = KeyValueStore(tmp_path / "state.json")
        store.set("@a", 1)

        store.remove_many(("@a", "@missing"))

        assert store.get("@a") is None

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_bytes(b"{not json")

        assert KeyValueStore(path).get("@a", "default") == "default"


class TestCalendarSnapshot:
    def test_missing_snapshot_is_empty(self, tmp_path):
        assert CalendarSnapshot(KeyValueStore(tmp_path / "state.json")).load() == []

    def test_unreadable_snapshot_is_ignored(self, tmp_path):
        store = KeyValueStore(tmp_path / "state.json")
        store.set(CALENDARS_KEY, [{"name": "no id"}])

        assert CalendarSnapshot(store).load() == []

    def test_clear(self, tmp_path):
        store = KeyValueStore(tmp_path / "state.json")
        snapshot = CalendarSnapshot(store)
        snapshot.save([Calendar(id="c1", name="A", role=Role.OWNER)])

        snapshot.clear()

        assert store.get(CALENDARS_KEY) is None


class TestPreferences:
    def test_theme_defaults_to_light(self, tmp_path):
        assert Preferences(KeyValueStore(tmp_path / "state.json")).theme() is Theme.LIGHT

    def test_theme_is_persisted(self, tmp_path):
        store = KeyValueStore(tmp_path / "state.json")
        Preferences(store).set_theme(Theme.PINK)

        assert store.get(THEME_KEY) == "pink"
        assert Preferences(KeyValueStore(tmp_path / "state.json")).theme() is Theme.PINK

    def test_unknown_theme_falls_back(self, tmp_path):
        store = KeyValueStore(tmp_path / "state.json")
        store.set(THEME_KEY, "neon")

        assert Preferences(store).theme() is Theme.LIGHT


class TestConfigureLogging:
    def test_writes_dated_log_file(self, tmp_path, monkeypatch):
        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        monkeypatch.setattr(root, "level", root.level)

        log_path = configure_logging(level="debug", log_dir=tmp_path)
        logging.getLogger("calsync.test").info("hello")
        for handler in root.handlers:
            handler.flush()

        assert log_path.parent == tmp_path
        assert log_path.name.startswith("calsync-")
        assert "hello" in log_path.read_text(encoding="utf-8")
        for handler in root.handlers:
            handler.close()

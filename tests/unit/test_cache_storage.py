"""Test cache persistence: JSON file and in-memory backends."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from conftest import make_command, make_event
from drill.cache.storage import (
    InMemoryCacheStorage,
    JsonFileCacheStorage,
    dump_store,
    load_store,
    parse_store,
    save_store,
)
from drill.cache.store import CacheStore
from drill.core.errors import CacheLoadError, CacheSaveError


def _populated(sim_clock) -> CacheStore:
    store = CacheStore(clock=sim_clock)
    store.add_entry(
        "agg-1",
        [make_event("Created", service_name="account-service")],
        [make_command("Create", service_name="account-service")],
        False,
    )
    sim_clock.advance(30)
    store.add_entry("agg-2", [], [], True)
    return store


class TestLoad:
    def test_missing_file_gives_empty_store(self, tmp_path: Path) -> None:
        store = load_store(tmp_path / "nope.json")
        assert len(store) == 0

    def test_invalid_json_gives_empty_store(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        store = load_store(path)
        assert len(store) == 0

    def test_empty_file_gives_empty_store(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("")
        assert len(load_store(path)) == 0

    def test_wrong_shape_gives_empty_store(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text(json.dumps({"requests": [{"timestamp": "yesterday"}]}))
        assert len(load_store(path)) == 0

    def test_binary_garbage_gives_empty_store(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert len(load_store(path)) == 0

    def test_directory_in_place_of_file_gives_empty_store(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.mkdir()
        assert len(load_store(path)) == 0

    def test_empty_document(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        path.write_text("{}")
        assert len(load_store(path)) == 0

    def test_loaded_store_enforces_capacity(self, tmp_path: Path) -> None:
        path = tmp_path / "cache.json"
        requests = [
            {"aggregateId": f"id{i}", "timestamp": f"2024-01-0{i + 1}T00:00:00Z",
             "events": [], "commands": [], "isMock": False}
            for i in range(7)
        ]
        path.write_text(json.dumps({"requests": requests}))
        store = load_store(path, capacity=5)
        assert len(store) == 5
        assert store.entries[0].aggregate_id == "id0"

    def test_parse_store_raises_on_bad_text(self) -> None:
        with pytest.raises(CacheLoadError):
            parse_store("[]")


class TestSave:
    def test_round_trip(self, tmp_path: Path, sim_clock) -> None:
        path = tmp_path / "cache.json"
        original = _populated(sim_clock)
        save_store(original, path)

        loaded = load_store(path)
        assert [e.aggregate_id for e in loaded.entries] == ["agg-2", "agg-1"]
        assert loaded.get_entry("agg-1") == original.get_entry("agg-1")
        assert loaded.get_entry("agg-2").is_mock is True

    def test_service_tag_survives_round_trip(self, tmp_path: Path, sim_clock) -> None:
        path = tmp_path / "cache.json"
        save_store(_populated(sim_clock), path)
        entry = load_store(path).get_entry("agg-1")
        assert entry.events[0].service_name == "account-service"
        assert entry.commands[0].service_name == "account-service"

    def test_file_is_pretty_printed_camel_case(self, tmp_path: Path, sim_clock) -> None:
        path = tmp_path / "cache.json"
        save_store(_populated(sim_clock), path)
        text = path.read_text()
        assert "\n  " in text

        doc = json.loads(text)
        first = doc["requests"][0]
        assert set(first) == {"aggregateId", "timestamp", "events", "commands", "isMock"}
        evt = doc["requests"][1]["events"][0]
        assert set(evt) == {
            "eventId", "eventAlias", "persistedAt", "payload",
            "correlationId", "aggregateId", "serviceName",
        }
        cmd = doc["requests"][1]["commands"][0]
        assert cmd["commandStatus"] == "EXECUTION_SUCCEEDED"

    def test_overwrites_previous_content(self, tmp_path: Path, sim_clock) -> None:
        path = tmp_path / "cache.json"
        path.write_text("{corrupt")
        save_store(_populated(sim_clock), path)
        assert len(load_store(path)) == 2

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "cache.json"
        save_store(CacheStore(), path)
        assert path.exists()

    def test_no_temp_files_left_behind(self, tmp_path: Path, sim_clock) -> None:
        path = tmp_path / "cache.json"
        save_store(_populated(sim_clock), path)
        assert [p.name for p in tmp_path.iterdir()] == ["cache.json"]

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unwritable_directory_raises(self, tmp_path: Path) -> None:
        locked = tmp_path / "locked"
        locked.mkdir()
        locked.chmod(0o500)
        try:
            with pytest.raises(CacheSaveError):
                save_store(CacheStore(), locked / "cache.json")
        finally:
            locked.chmod(0o700)

    def test_parent_is_a_file_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(CacheSaveError, match="cannot write cache file"):
            save_store(CacheStore(), blocker / "cache.json")


class TestJsonFileCacheStorage:
    def test_load_save_cycle(self, tmp_path: Path, sim_clock) -> None:
        storage = JsonFileCacheStorage(tmp_path / "cache.json", clock=sim_clock)
        store = storage.load()
        store.add_entry("agg-1", [make_event()], [], False)
        storage.save(store)

        again = JsonFileCacheStorage(tmp_path / "cache.json").load()
        assert "agg-1" in again

    def test_capacity_passed_through(self, tmp_path: Path) -> None:
        storage = JsonFileCacheStorage(tmp_path / "cache.json", capacity=2)
        assert storage.load().capacity == 2

    def test_expands_user(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        storage = JsonFileCacheStorage("~/cache.json")
        assert storage.path == tmp_path / "cache.json"


class TestInMemoryCacheStorage:
    def test_starts_empty(self) -> None:
        assert len(InMemoryCacheStorage().load()) == 0

    def test_save_then_load(self, sim_clock) -> None:
        storage = InMemoryCacheStorage()
        storage.save(_populated(sim_clock))
        assert storage.saves == 1
        assert len(storage.load()) == 2
        assert storage.document()["requests"][0]["aggregateId"] == "agg-2"

    def test_corrupt_text_degrades(self) -> None:
        assert len(InMemoryCacheStorage("garbage").load()) == 0

    def test_same_encoding_as_file(self, tmp_path: Path, sim_clock) -> None:
        store = _populated(sim_clock)
        mem = InMemoryCacheStorage()
        mem.save(store)
        path = tmp_path / "cache.json"
        save_store(store, path)
        assert mem.text == path.read_text() == dump_store(store)

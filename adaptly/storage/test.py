"""Unit tests for state persistence."""

import json
from unittest.mock import MagicMock

import pytest

from adaptly.state import UIState
from adaptly.storage import (
    InMemoryStorage,
    SQLiteStorage,
    StateStore,
    index_key,
    record_key,
)


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Each StateStore test runs against both backends."""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "nested" / "state.db")
    yield backend
    backend.close()


@pytest.fixture
def store(storage):
    return StateStore(storage)


class TestSQLiteStorage:
    """Tests for the SQLite backend itself."""

    @pytest.mark.unit
    def test_lazy_creation(self, tmp_path):
        path = tmp_path / "sub" / "state.db"
        backend = SQLiteStorage(path)
        assert not path.exists()

        backend.set("a", "1")
        assert path.exists()
        backend.close()

    @pytest.mark.unit
    def test_crud(self, tmp_path):
        backend = SQLiteStorage(tmp_path / "state.db")
        backend.set("a", "1")
        backend.set("a", "2")

        assert backend.get("a") == "2"
        assert backend.contains("a")
        assert backend.keys() == ["a"]
        assert backend.delete("a") is True
        assert backend.delete("a") is False
        assert backend.get("a") is None
        backend.close()

    @pytest.mark.unit
    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "state.db"
        first = SQLiteStorage(path)
        first.set("k", "v")
        first.close()

        second = SQLiteStorage(path)
        assert second.get("k") == "v"
        second.close()


class TestRoundTrip:
    """Tests for save/load."""

    @pytest.mark.unit
    def test_round_trip(self, store, sample_state):
        assert store.save("dash", "1.0.0", sample_state) is True
        assert store.load("dash", "1.0.0") == sample_state

    @pytest.mark.unit
    def test_record_format(self, store, storage, sample_state):
        store.save("dash", "1.0.0", sample_state)
        record = json.loads(storage.get("dash_1.0.0"))

        assert set(record) == {"state", "savedAtEpochMillis", "schemaVersion"}
        assert record["schemaVersion"] == "1.0.0"
        assert isinstance(record["savedAtEpochMillis"], int)
        assert record["state"]["elements"][0]["id"] == "revenue"
        assert storage.get("index:dash") == "1.0.0"

    @pytest.mark.unit
    def test_load_absent(self, store):
        assert store.load("dash", "1.0.0") is None

    @pytest.mark.unit
    def test_keys_are_independent(self, store, sample_state):
        store.save("a", "1.0.0", sample_state)
        store.save("b", "1.0.0", UIState())
        assert store.load("a", "1.0.0") == sample_state
        assert store.load("b", "1.0.0") == UIState()


class TestVersionGate:
    """Records saved under another version are never returned."""

    @pytest.mark.unit
    def test_version_mismatch_returns_none_and_deletes(self, store, storage, sample_state):
        store.save("dash", "1.0.0", sample_state)

        assert store.load("dash", "2.0.0") is None
        assert not storage.contains("dash_1.0.0")
        assert not store.exists("dash")

    @pytest.mark.unit
    def test_stamped_version_mismatch(self, store, storage, sample_state):
        """A record whose stamp disagrees with its key is stale too."""
        store.save("dash", "1.0.0", sample_state)
        record = json.loads(storage.get("dash_1.0.0"))
        record["schemaVersion"] = "0.9.0"
        storage.set("dash_1.0.0", json.dumps(record))

        assert store.load("dash", "1.0.0") is None
        assert not storage.contains("dash_1.0.0")

    @pytest.mark.unit
    def test_new_version_replaces_old(self, store, storage, sample_state):
        store.save("dash", "1.0.0", sample_state)
        store.save("dash", "2.0.0", UIState())

        assert not storage.contains("dash_1.0.0")
        assert store.load("dash", "2.0.0") == UIState()


class TestCorruption:
    """Corrupt records are treated as absent."""

    @pytest.mark.unit
    def test_corrupt_json(self, store, storage):
        storage.set("dash_1.0.0", "{not json")
        storage.set("index:dash", "1.0.0")

        assert store.load("dash", "1.0.0") is None
        assert not storage.contains("dash_1.0.0")
        assert not storage.contains("index:dash")

    @pytest.mark.unit
    def test_invalid_state(self, store, storage):
        storage.set(
            "dash_1.0.0",
            json.dumps({"state": {"spacing": -4}, "schemaVersion": "1.0.0"}),
        )
        assert store.load("dash", "1.0.0") is None
        assert not storage.contains("dash_1.0.0")

    @pytest.mark.unit
    def test_missing_state_field(self, store, storage):
        storage.set("dash_1.0.0", json.dumps({"schemaVersion": "1.0.0"}))
        assert store.load("dash", "1.0.0") is None


class TestClearAndExists:
    """Tests for clear/exists/info."""

    @pytest.mark.unit
    def test_clear_without_version(self, store, sample_state):
        store.save("dash", "1.0.0", sample_state)
        assert store.exists("dash")

        assert store.clear("dash") is True
        assert not store.exists("dash")
        assert store.load("dash", "1.0.0") is None

    @pytest.mark.unit
    def test_clear_with_version(self, store, sample_state):
        store.save("dash", "1.0.0", sample_state)
        assert store.clear("dash", "1.0.0") is True
        assert not store.exists("dash", "1.0.0")

    @pytest.mark.unit
    def test_clear_absent_is_ok(self, store):
        assert store.clear("nothing") is True

    @pytest.mark.unit
    def test_exists_with_version(self, store, sample_state):
        store.save("dash", "1.0.0", sample_state)
        assert store.exists("dash", "1.0.0")
        assert not store.exists("dash", "2.0.0")

    @pytest.mark.unit
    def test_info(self, store, sample_state):
        store.save("dash", "1.0.0", sample_state)
        info = store.info("dash", "1.0.0")

        assert info.schema_version == "1.0.0"
        assert info.element_count == 2
        assert info.size_bytes > 0
        assert info.saved_at.year >= 2024

    @pytest.mark.unit
    def test_info_absent(self, store):
        assert store.info("dash", "1.0.0") is None


class TestBestEffort:
    """Failures are logged, never raised."""

    @pytest.fixture
    def failing_store(self):
        backend = MagicMock()
        for method in ("get", "set", "delete", "contains", "close"):
            getattr(backend, method).side_effect = OSError("disk full")
        return StateStore(backend)

    @pytest.mark.unit
    def test_save_fails_quietly(self, failing_store, sample_state):
        assert failing_store.save("dash", "1.0.0", sample_state) is False

    @pytest.mark.unit
    def test_load_fails_quietly(self, failing_store):
        assert failing_store.load("dash", "1.0.0") is None

    @pytest.mark.unit
    def test_clear_and_exists_fail_quietly(self, failing_store):
        assert failing_store.clear("dash") is False
        assert failing_store.exists("dash") is False
        assert failing_store.info("dash", "1.0.0") is None
        failing_store.close()


class TestDisabled:
    """A disabled store is a no-op."""

    @pytest.mark.unit
    def test_disabled(self, sample_state):
        backend = InMemoryStorage()
        store = StateStore(backend, enabled=False)

        assert store.save("dash", "1.0.0", sample_state) is False
        assert store.load("dash", "1.0.0") is None
        assert store.clear("dash") is False
        assert store.exists("dash") is False
        assert backend.keys() == []


class TestRecordKey:
    @pytest.mark.unit
    def test_format(self):
        assert record_key("adaptly-ui", "1.0.0") == "adaptly-ui_1.0.0"

    @pytest.mark.unit
    def test_index_key(self):
        assert index_key("adaptly-ui") == "index:adaptly-ui"

    @pytest.mark.unit
    @pytest.mark.parametrize("key", ["", "index:dash"])
    def test_reserved_or_empty_key(self, key):
        with pytest.raises(ValueError):
            record_key(key, "1.0.0")


class TestKeyIsolation:
    """Distinct application keys never overwrite each other's records."""

    @pytest.mark.unit
    def test_key_ending_like_a_record(self, store, sample_state):
        store.save("app", "v1", sample_state)
        store.save("app_v1", "v2", UIState())

        assert store.load("app", "v1") == sample_state
        assert store.load("app_v1", "v2") == UIState()

    @pytest.mark.unit
    def test_clearing_one_key_keeps_the_other(self, store, sample_state):
        store.save("app", "v1", sample_state)
        store.save("app_v1", "v2", UIState())

        assert store.clear("app_v1") is True
        assert store.exists("app") is True
        assert store.load("app", "v1") == sample_state

    @pytest.mark.unit
    def test_reserved_prefix_refused(self, store, storage, sample_state, caplog):
        with caplog.at_level("ERROR", logger="adaptly.storage.lib"):
            assert store.save("index:app", "v1", sample_state) is False
        assert "may not start with" in caplog.text
        assert store.load("index:app", "v1") is None
        assert store.exists("index:app") is False
        assert not storage.contains("index:app_v1")

"""
Unit tests for the history store.

Run with: pytest tests/unit/test_store.py -v
"""

import json
from datetime import date
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from colorado_air_quality.collection.store import (
    HistoryStore,
    JsonFileBackend,
    RedisBackend,
    StoreError,
    get_store,
    series_key,
)
from colorado_air_quality.utils.config import Settings
from conftest import MemoryBackend, make_record


class TestSeriesKey:
    def test_composite_key(self):
        assert series_key("pueblo", "Ozone") == "pueblo:Ozone"

    def test_region_only(self):
        assert series_key("pueblo") == "pueblo"


class TestJsonFileStore:
    """Tests for the default file-backed store."""

    def test_missing_file_is_empty(self, tmp_path):
        store = HistoryStore(JsonFileBackend(tmp_path / "history.json"))
        assert store.load() == {}

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "history.json"
        history = {"pueblo:PM2.5": [make_record("pueblo", date(2025, 1, 3))]}

        assert HistoryStore(JsonFileBackend(path)).save(history) is True

        # New instance, as after a process restart
        reloaded = HistoryStore(JsonFileBackend(path)).load()
        assert reloaded == history
        assert not list(path.parent.glob("*.tmp"))

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        assert HistoryStore(JsonFileBackend(path)).load() == {}

    def test_wrong_shape_is_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text(json.dumps([1, 2, 3]))
        assert HistoryStore(JsonFileBackend(path)).load() == {}

    def test_corrupt_series_dropped(self, tmp_path):
        path = tmp_path / "history.json"
        good = make_record("pueblo", date(2025, 1, 3)).model_dump(mode="json")
        path.write_text(json.dumps({"pueblo:PM2.5": [good], "aspen:PM2.5": [{"aqi": "x"}]}))

        history = HistoryStore(JsonFileBackend(path)).load()

        assert list(history) == ["pueblo:PM2.5"]

    def test_write_failure_reported(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store = HistoryStore(JsonFileBackend(blocker / "history.json"))

        assert store.save({}) is False


class TestMemoryBackedStore:
    def test_write_failure_keeps_previous_blob(self):
        backend = MemoryBackend()
        store = HistoryStore(backend)
        history = {"pueblo:PM2.5": [make_record("pueblo", date(2025, 1, 3))]}
        store.save(history)

        backend.fail_writes = True
        assert store.save({}) is False
        assert store.load() == history


class TestRedisStore:
    """Tests for the Redis backend with a mocked client."""

    def test_read_write(self):
        client = MagicMock()
        client.get.return_value = None
        store = HistoryStore(RedisBackend(client, "caq:history"))

        assert store.load() == {}
        history = {"aspen:CO": [make_record("aspen", date(2025, 1, 3), pollutant="CO")]}
        assert store.save(history) is True

        key, payload = client.set.call_args[0]
        assert key == "caq:history"
        client.get.return_value = payload
        assert store.load() == history

    def test_redis_down(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("refused")
        client.set.side_effect = RedisConnectionError("refused")
        store = HistoryStore(RedisBackend(client, "caq:history"))

        assert store.load() == {}
        assert store.save({}) is False

    def test_strict_load_raises_on_outage(self):
        client = MagicMock()
        client.get.side_effect = RedisConnectionError("refused")
        store = HistoryStore(RedisBackend(client, "caq:history"))

        with pytest.raises(StoreError):
            store.load(strict=True)

    def test_strict_load_of_missing_blob_is_empty(self, tmp_path):
        store = HistoryStore(JsonFileBackend(tmp_path / "history.json"))
        assert store.load(strict=True) == {}


class TestGetStore:
    def test_file_backend_default(self, tmp_path):
        settings = Settings(_env_file=None, store_path=tmp_path / "h.json")
        store = get_store(settings)
        assert store.load() == {}

"""
History store.

Persists the whole history as one JSON blob under a fixed key: a map from
series key (``region`` or ``region:pollutant``) to the ordered record list.

Backends:
- JsonFileBackend: local file, atomic replace on write (default)
- RedisBackend: single string key, for hosts that already run Redis

Reads never fail: a missing or corrupt blob is "no history yet".
Writes never raise: failures are logged and reported as False.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from colorado_air_quality.metrics import CollectionMetrics, get_metrics
from colorado_air_quality.models import HistoricalRecord
from colorado_air_quality.utils.config import Settings

logger = logging.getLogger(__name__)

HistoryMap = dict[str, list[HistoricalRecord]]

_series_adapter = TypeAdapter(list[HistoricalRecord])


class StoreError(Exception):
    """Backend could not read or write the blob."""


class StoreBackend(Protocol):
    def read(self) -> Optional[str]: ...

    def write(self, payload: str) -> None: ...


class JsonFileBackend:
    """Blob stored in a local file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e

    def write(self, payload: str) -> None:
        """Write to a temp file in the same directory, then rename over the target."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Cannot write {self.path}: {e}") from e


class RedisBackend:
    """Blob stored under a single Redis string key."""

    def __init__(self, client: redis.Redis, key: str):
        self._client = client
        self.key = key

    @classmethod
    def from_url(cls, url: str, key: str) -> "RedisBackend":
        return cls(redis.from_url(url, decode_responses=True), key)

    def read(self) -> Optional[str]:
        try:
            return self._client.get(self.key)
        except RedisError as e:
            raise StoreError(f"Redis GET {self.key} failed: {e}") from e

    def write(self, payload: str) -> None:
        try:
            self._client.set(self.key, payload)
        except RedisError as e:
            raise StoreError(f"Redis SET {self.key} failed: {e}") from e


def series_key(region_id: str, pollutant: Optional[str] = None) -> str:
    return f"{region_id}:{pollutant}" if pollutant else region_id


class HistoryStore:
    """Serialize/deserialize boundary around a backend."""

    def __init__(self, backend: StoreBackend, metrics: Optional[CollectionMetrics] = None):
        self._backend = backend
        self._metrics = metrics or get_metrics()

    def load(self, strict: bool = False) -> HistoryMap:
        """
        Read the full history.

        Args:
            strict: Re-raise backend read failures instead of reporting
                empty history. Writers must read strictly, otherwise a
                transient outage followed by save() erases every series.

        Returns:
            Series map. Empty if nothing is stored or the blob is unreadable;
            individual series that fail validation are dropped.

        Raises:
            StoreError: backend read failed and ``strict`` is set
        """
        try:
            raw = self._backend.read()
        except StoreError as e:
            if strict:
                raise
            logger.error("Error reading historical data, treating as empty: %s", e)
            return {}

        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Stored historical data is not valid JSON, treating as empty: %s", e)
            return {}

        if not isinstance(data, dict):
            logger.error("Stored historical data is not a map, treating as empty")
            return {}

        history: HistoryMap = {}
        for key, records in data.items():
            try:
                history[key] = _series_adapter.validate_python(records)
            except ValidationError as e:
                logger.warning("Dropping corrupt series %s: %d errors", key, e.error_count())
        return history

    def save(self, history: HistoryMap) -> bool:
        """
        Replace the stored history.

        Returns:
            True if written, False if the backend failed (already logged).
        """
        payload = json.dumps(
            {
                key: [record.model_dump(mode="json") for record in records]
                for key, records in history.items()
            },
            separators=(",", ":"),
        )
        try:
            self._backend.write(payload)
        except StoreError as e:
            logger.error("Error saving historical data: %s", e)
            self._metrics.record_store_write_failure()
            return False

        self._metrics.set_series_count(len(history))
        return True


def get_store(settings: Settings) -> HistoryStore:
    """Build the configured store."""
    if settings.store_backend == "redis":
        logger.info("History store: Redis key %s", settings.store_key)
        return HistoryStore(RedisBackend.from_url(settings.redis_url, settings.store_key))
    logger.info("History store: %s", settings.store_path)
    return HistoryStore(JsonFileBackend(settings.store_path))

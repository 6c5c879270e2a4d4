"""Historical collection: derivation, rolling series and persistence."""

from .collector import CycleReport, HistoricalCollector, compute_status, upsert_record
from .store import HistoryStore, JsonFileBackend, RedisBackend, StoreError, get_store, series_key

__all__ = [
    "CycleReport",
    "HistoricalCollector",
    "HistoryStore",
    "JsonFileBackend",
    "RedisBackend",
    "StoreError",
    "compute_status",
    "get_store",
    "series_key",
    "upsert_record",
]

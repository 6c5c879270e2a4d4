"""Data models for the regional collection pipeline."""

from .schemas import (
    AQICategory,
    AutomaticCollectionStatus,
    CollectionStatus,
    HistoricalRecord,
    Observation,
    Provenance,
    Region,
)

__all__ = [
    "AQICategory",
    "AutomaticCollectionStatus",
    "CollectionStatus",
    "HistoricalRecord",
    "Observation",
    "Provenance",
    "Region",
]

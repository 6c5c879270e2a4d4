"""
Historical Collector.

One collection cycle = one pass over every region (and every tracked
pollutant), turning gateway observations into persisted HistoricalRecords.

Series invariants, enforced on every write:
- ascending by date
- at most one record per date (upsert, not append)
- at most ``max_days`` records (oldest evicted)
"""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from colorado_air_quality.api.gateway import FetchGateway
from colorado_air_quality.collection import health
from colorado_air_quality.collection.store import HistoryMap, HistoryStore, series_key
from colorado_air_quality.metrics import CollectionMetrics, get_metrics
from colorado_air_quality.models import (
    AQICategory,
    CollectionStatus,
    HistoricalRecord,
    Observation,
    Region,
)
from colorado_air_quality.utils.clock import Clock

logger = logging.getLogger(__name__)

DEFAULT_POLLUTANTS: tuple[str, ...] = ("PM2.5", "Ozone", "PM10", "NO2", "SO2", "CO")


def upsert_record(
    series: Sequence[HistoricalRecord],
    record: HistoricalRecord,
    max_days: int = 30,
) -> list[HistoricalRecord]:
    """
    Insert ``record`` into ``series``, replacing any record for the same date.

    Returns:
        New list sorted ascending by date, trimmed to the newest ``max_days``.
    """
    updated = [r for r in series if r.date != record.date]
    updated.append(record)
    updated.sort(key=lambda r: r.date)
    return updated[-max_days:]


def compute_status(history: HistoryMap) -> CollectionStatus:
    last: Optional[date] = None
    total_days = 0
    for records in history.values():
        if not records:
            continue
        total_days = max(total_days, len(records))
        newest = max(r.date for r in records)
        if last is None or newest > last:
            last = newest
    return CollectionStatus(
        last_collection_date=last,
        total_days=total_days,
        series_count=len(history),
    )


@dataclass
class CycleReport:
    """Outcome of one collection cycle."""

    collection_date: date
    regions_attempted: int = 0
    regions_succeeded: int = 0
    failed_regions: list[str] = field(default_factory=list)
    records_written: int = 0
    fallback_regions: int = 0
    duration_seconds: float = 0.0


class HistoricalCollector:
    """
    Builds and maintains the rolling per-region/per-pollutant history.

    Usage:
        collector = HistoricalCollector(regions, gateway, store, clock)
        report = await collector.run_cycle()
        series = collector.get_series("denver-metro", "Ozone")
    """

    def __init__(
        self,
        regions: Sequence[Region],
        gateway: FetchGateway,
        store: HistoryStore,
        clock: Clock,
        pollutants: Sequence[str] = DEFAULT_POLLUTANTS,
        primary_pollutant: str = "PM2.5",
        max_days: int = 30,
        pollutant_jitter: float = 0.1,
        rng: Optional[random.Random] = None,
        metrics: Optional[CollectionMetrics] = None,
    ):
        self._regions = tuple(regions)
        self._gateway = gateway
        self._store = store
        self._clock = clock
        self._pollutants = tuple(pollutants)
        self._primary_pollutant = primary_pollutant
        self._max_days = max_days
        self._pollutant_jitter = pollutant_jitter
        self._rng = rng or random.Random()
        self._metrics = metrics or get_metrics()

    @property
    def regions(self) -> tuple[Region, ...]:
        return self._regions

    @property
    def pollutants(self) -> tuple[str, ...]:
        return self._pollutants

    async def run_cycle(self) -> CycleReport:
        """
        Collect today's records for every region.

        A failure in one region is logged and skipped; the cycle completes
        once every region has been attempted. History is persisted after each
        region, so readers may observe a mix of old and new regions mid-cycle.
        """
        today = self._clock.today()
        report = CycleReport(collection_date=today)
        started = time.monotonic()

        logger.info(
            "Starting collection for %s: %d regions x %d pollutants",
            today.isoformat(),
            len(self._regions),
            len(self._pollutants),
        )

        for index, region in enumerate(self._regions, start=1):
            report.regions_attempted += 1
            try:
                logger.info(
                    "Collecting %s (%d/%d)", region.display_name, index, len(self._regions)
                )
                observation = await self._gateway.fetch_observation(region)
                written = self._collect_region(region, observation, today)
            except Exception:
                logger.exception("Error collecting data for %s, continuing", region.display_name)
                report.failed_regions.append(region.id)
                self._metrics.record_region_failure()
                continue

            report.regions_succeeded += 1
            report.records_written += written
            if observation.is_fallback:
                report.fallback_regions += 1

        report.duration_seconds = time.monotonic() - started
        self._metrics.set_cycle_duration(report.duration_seconds)
        logger.info(
            "Collection for %s finished: %d/%d regions, %d records, %d fallback, %.1fs",
            today.isoformat(),
            report.regions_succeeded,
            report.regions_attempted,
            report.records_written,
            report.fallback_regions,
            report.duration_seconds,
        )
        if report.failed_regions:
            logger.warning("Regions failed this cycle: %s", ", ".join(report.failed_regions))
        return report

    def _collect_region(self, region: Region, observation: Observation, today: date) -> int:
        """
        Upsert one record per pollutant and persist. Returns records written.

        Raises:
            StoreError: history could not be read; nothing is written
        """
        history = self._store.load(strict=True)

        for pollutant in self._pollutants:
            record = self.build_record(region, observation, pollutant, today)
            key = series_key(region.id, pollutant)
            history[key] = upsert_record(history.get(key, []), record, self._max_days)

        if not self._store.save(history):
            raise RuntimeError(f"History write failed for {region.id}")

        self._metrics.record_written(len(self._pollutants))
        return len(self._pollutants)

    def build_record(
        self,
        region: Region,
        observation: Observation,
        pollutant: str,
        today: date,
    ) -> HistoricalRecord:
        """HistoricalRecord for one pollutant, derived from the region's peak observation."""
        if len(self._pollutants) > 1:
            aqi = health.estimate_pollutant_aqi(
                observation.aqi, pollutant, self._pollutant_jitter, self._rng
            )
        else:
            aqi = observation.aqi

        return HistoricalRecord(
            date=today,
            region_id=region.id,
            region_name=region.name,
            aqi=aqi,
            pollutant=pollutant,
            category=AQICategory.from_aqi(aqi).value,
            observed_date=observation.observed_date,
            provenance=observation.provenance,
            emergency_visit_estimate=health.estimate_emergency_visits(aqi, region.population),
            hospitalization_estimate=health.estimate_hospitalizations(aqi, region.population),
            asthma_rate_estimate=health.estimate_asthma_rate(),
            asthma_population_estimate=health.estimate_asthma_population(region.population),
        )

    def get_series(self, region_id: str, pollutant: Optional[str] = None) -> list[HistoricalRecord]:
        """
        Current series for a region.

        Without a pollutant, returns the primary pollutant's series, falling
        back to a legacy single-pollutant series keyed by region id alone.
        """
        history = self._store.load()
        if pollutant:
            return history.get(series_key(region_id, pollutant), [])
        return (
            history.get(series_key(region_id, self._primary_pollutant))
            or history.get(series_key(region_id))
            or []
        )

    def get_all_series(self) -> HistoryMap:
        return self._store.load()

    def get_status(self) -> CollectionStatus:
        """Computed fresh from persisted state on every call."""
        return compute_status(self._store.load())

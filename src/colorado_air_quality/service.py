"""
Air quality service: the consumer query surface.

Constructed once at process start and handed to consumers (charts, map
layers, status banners). Owns the gateway, collector and scheduler, all
sharing one clock and one store.
"""

import logging
import random
from datetime import datetime
from typing import Optional

from colorado_air_quality.api.airnow_client import AirNowClient
from colorado_air_quality.api.gateway import FetchGateway
from colorado_air_quality.collection.collector import HistoricalCollector
from colorado_air_quality.collection.store import HistoryMap, HistoryStore, get_store
from colorado_air_quality.data.regions import get_region_by_id, load_regions, total_population
from colorado_air_quality.models import (
    AutomaticCollectionStatus,
    CollectionStatus,
    HistoricalRecord,
    Observation,
    Region,
)
from colorado_air_quality.scheduling.scheduler import CollectionScheduler
from colorado_air_quality.utils.clock import Clock, SystemClock
from colorado_air_quality.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


def describe_freshness(last_collection: Optional[datetime], now: datetime) -> str:
    """Human-readable age of the newest collected data."""
    if last_collection is None:
        return "No data"
    hours_ago = int((now - last_collection).total_seconds() // 3600)
    if hours_ago < 1:
        return "Less than 1 hour ago"
    if hours_ago < 24:
        return f"{hours_ago} hours ago"
    days_ago = hours_ago // 24
    return f"{days_ago} day{'s' if days_ago > 1 else ''} ago"


class AirQualityService:
    """
    Facade over the collection pipeline.

    Usage:
        service = AirQualityService.from_settings(get_settings())
        await service.start()
        service.get_series("denver-metro", "Ozone")
    """

    def __init__(
        self,
        settings: Settings,
        regions: tuple[Region, ...],
        client: AirNowClient,
        store: HistoryStore,
        clock: Clock,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self._regions = regions
        self._client = client
        self._clock = clock

        self.gateway = FetchGateway(
            client,
            clock,
            max_concurrent=settings.max_concurrent_requests,
            spacing_seconds=settings.request_spacing_seconds,
            cache_ttl_seconds=settings.cache_ttl_seconds,
            fallback_jitter=settings.fallback_jitter,
            default_pollutant=settings.primary_pollutant,
        )
        self.collector = HistoricalCollector(
            regions,
            self.gateway,
            store,
            clock,
            pollutants=settings.pollutants,
            primary_pollutant=settings.primary_pollutant,
            max_days=settings.history_max_days,
            pollutant_jitter=settings.pollutant_jitter,
            rng=rng,
        )
        self.scheduler = CollectionScheduler(
            self.collector,
            clock,
            collection_hour=settings.collection_hour,
            collection_minute=settings.collection_minute,
            catchup_interval_seconds=settings.catchup_interval_seconds,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AirQualityService":
        settings = settings or get_settings()
        api_key = settings.airnow_api_key.get_secret_value() if settings.airnow_api_key else None
        if not api_key:
            logger.warning("No AirNow API key configured, all observations will be fallback")
        client = AirNowClient(
            api_key=api_key,
            base_url=settings.airnow_base_url,
            timeout=settings.api_timeout_seconds,
        )
        return cls(
            settings=settings,
            regions=load_regions(settings.regions_file),
            client=client,
            store=get_store(settings),
            clock=SystemClock(settings.timezone),
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        logger.info("Starting collection service: %s", self.settings.redacted())
        await self.scheduler.start()

    async def run_forever(self) -> None:
        await self.scheduler.run_forever()

    async def close(self) -> None:
        self.scheduler.stop()
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Query surface
    # -------------------------------------------------------------------------

    def list_regions(self) -> list[Region]:
        return list(self._regions)

    def get_region(self, region_id: str) -> Optional[Region]:
        return get_region_by_id(self._regions, region_id)

    def total_population_covered(self) -> int:
        return total_population(self._regions)

    def get_series(self, region_id: str, pollutant: Optional[str] = None) -> list[HistoricalRecord]:
        return self.collector.get_series(region_id, pollutant)

    def get_all_series(self) -> HistoryMap:
        return self.collector.get_all_series()

    def get_status(self) -> CollectionStatus:
        return self.collector.get_status()

    async def force_collection_now(self) -> bool:
        """Operator refresh. A no-op (False) if a cycle is already running."""
        logger.info("Forcing immediate data refresh")
        return await self.scheduler.trigger("manual")

    def clear_cache(self) -> None:
        self.gateway.clear_cache()

    def get_automatic_collection_status(self) -> AutomaticCollectionStatus:
        status = self.get_status()
        now = self._clock.now()
        last_collection = None
        if status.last_collection_date is not None:
            last_collection = datetime.combine(
                status.last_collection_date, datetime.min.time(), tzinfo=now.tzinfo
            )
        return AutomaticCollectionStatus(
            is_active=self.scheduler.is_active,
            next_collection_time=self.scheduler.next_collection_at.isoformat(timespec="minutes"),
            last_collection_date=status.last_collection_date,
            data_freshness=describe_freshness(last_collection, now),
        )

    async def get_current_conditions(self) -> list[Observation]:
        """Current observation for every region (cached for the gateway TTL)."""
        return await self.gateway.fetch_all(self._regions)

    async def get_most_polluted_regions(self, limit: int = 5) -> list[Observation]:
        observations = await self.get_current_conditions()
        return sorted(observations, key=lambda o: o.aqi, reverse=True)[:limit]

    async def get_cleanest_regions(self, limit: int = 5) -> list[Observation]:
        observations = await self.get_current_conditions()
        return sorted(observations, key=lambda o: o.aqi)[:limit]

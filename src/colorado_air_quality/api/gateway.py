"""
Fetch Gateway.

Rate-limited access to current AirNow observations, one per region.

- At most ``max_concurrent`` requests in flight
- At least ``spacing_seconds`` between successive dispatches
- Results cached per region id for ``cache_ttl_seconds``
- Never raises: upstream failures degrade to a deterministic fallback
"""

import asyncio
import logging
import random
from datetime import date
from typing import Any, Iterable, Optional

import httpx
from pydantic import ValidationError

from colorado_air_quality.api.airnow_client import (
    AirNowClient,
    AirNowError,
    AirNowReading,
    RateLimitError,
)
from colorado_air_quality.api.cache import TTLCache
from colorado_air_quality.metrics import CollectionMetrics, get_metrics
from colorado_air_quality.models import AQICategory, Observation, Provenance, Region
from colorado_air_quality.utils.clock import Clock

logger = logging.getLogger(__name__)


def select_peak_observation(
    entries: Iterable[Any],
    region: Region,
    today: date,
) -> Optional[Observation]:
    """
    Pick the representative observation from a raw AirNow entry list.

    The highest AQI across valid readings wins (AirNow's public dashboard shows
    the same). Ties keep the first-seen reading. Entries without a positive
    AQI or a parameter name are ignored.

    Returns:
        Observation, or None if no entry is valid.
    """
    peak: Optional[AirNowReading] = None
    for raw in entries:
        if not isinstance(raw, dict):
            continue
        try:
            reading = AirNowReading.model_validate(raw)
        except ValidationError:
            continue
        if peak is None or reading.aqi > peak.aqi:
            peak = reading

    if peak is None:
        return None

    if peak.category is not None and peak.category.name:
        category = peak.category.name
    else:
        category = AQICategory.from_aqi(peak.aqi).value

    return Observation(
        region_id=region.id,
        aqi=peak.aqi,
        pollutant=peak.parameter_name,
        category=category,
        observed_date=peak.date_observed or today,
        reporting_area=peak.reporting_area or region.display_name,
        provenance=Provenance.REAL,
    )


def fallback_aqi(region: Region, day: date, jitter: int) -> int:
    """Region baseline plus jitter in [-jitter, +jitter], fixed per (region, day)."""
    rng = random.Random(f"{region.id}:{day.isoformat()}")
    offset = rng.randint(-jitter, jitter) if jitter > 0 else 0
    return max(0, region.baseline_aqi + offset)


class FetchGateway:
    """
    Observation provider for the collector and the query surface.

    Usage:
        gateway = FetchGateway(AirNowClient(api_key), SystemClock("America/Denver"))
        observations = await gateway.fetch_all(regions)
    """

    def __init__(
        self,
        client: AirNowClient,
        clock: Clock,
        max_concurrent: int = 3,
        spacing_seconds: float = 0.5,
        cache_ttl_seconds: float = 30 * 60,
        fallback_jitter: int = 5,
        default_pollutant: str = "PM2.5",
        metrics: Optional[CollectionMetrics] = None,
    ):
        self._client = client
        self._clock = clock
        self._max_concurrent = max_concurrent
        self._spacing = spacing_seconds
        self._fallback_jitter = fallback_jitter
        self._default_pollutant = default_pollutant
        self._metrics = metrics or get_metrics()
        self._cache: TTLCache[Observation] = TTLCache(clock, cache_ttl_seconds)

        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._dispatch_lock = asyncio.Lock()
        self._last_dispatch: Optional[float] = None
        self._in_flight = 0
        self._pending: dict[str, asyncio.Future[Observation]] = {}

        # Statistics
        self._stats = {
            "requests": 0,
            "cache_hits": 0,
            "shared": 0,
            "real": 0,
            "fallbacks": 0,
            "peak_in_flight": 0,
        }

    @property
    def stats(self) -> dict[str, int]:
        return dict(self._stats)

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Observation cache cleared")

    async def fetch_observation(self, region: Region) -> Observation:
        """
        Current observation for one region. Never raises.

        Args:
            region: Region to look up

        Returns:
            Cached, real or fallback Observation.
        """
        cached = self._cache.get(region.id)
        if cached is not None:
            self._stats["cache_hits"] += 1
            self._metrics.record_lookup("cache_hit")
            logger.debug("Using cached observation for %s", region.name)
            return cached

        # One upstream lookup per region at a time; later callers share it
        pending = self._pending.get(region.id)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(region))
            self._pending[region.id] = pending
            pending.add_done_callback(lambda _: self._pending.pop(region.id, None))
        else:
            self._stats["shared"] += 1
            self._metrics.record_lookup("shared")
            logger.debug("Joining in-flight lookup for %s", region.name)
        return await asyncio.shield(pending)

    async def _lookup(self, region: Region) -> Observation:
        today = self._clock.today()
        observation: Optional[Observation] = None
        try:
            entries = await self._request(region)
            observation = select_peak_observation(entries, region, today)
            if observation is None:
                logger.warning("No valid AQI observations for %s, using fallback", region.name)
        except RateLimitError as e:
            logger.warning("Rate limited fetching %s, using fallback: %s", region.name, e)
        except (AirNowError, httpx.HTTPError) as e:
            logger.error("Failed to fetch %s, using fallback: %s", region.name, e)
        except Exception:
            logger.exception("Unexpected error fetching %s, using fallback", region.name)

        if observation is None:
            observation = self.fallback_observation(region, today)
            self._stats["fallbacks"] += 1
            self._metrics.record_lookup("fallback")
        else:
            self._stats["real"] += 1
            self._metrics.record_lookup("real")
            logger.info(
                "%s: AQI %d (%s, %s)",
                region.name,
                observation.aqi,
                observation.pollutant,
                observation.category,
            )

        self._cache.set(region.id, observation)
        return observation

    async def fetch_all(self, regions: Iterable[Region]) -> list[Observation]:
        """
        Fetch every region through a FIFO queue drained by a fixed worker pool.

        Returns:
            Observations in the same order as ``regions``.
        """
        regions = list(regions)
        results: list[Optional[Observation]] = [None] * len(regions)
        queue: asyncio.Queue[tuple[int, Region]] = asyncio.Queue()
        for item in enumerate(regions):
            queue.put_nowait(item)

        async def worker() -> None:
            while True:
                try:
                    index, region = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                results[index] = await self.fetch_observation(region)
                queue.task_done()

        pool_size = min(self._max_concurrent, len(regions))
        await asyncio.gather(*(worker() for _ in range(pool_size)))
        return [obs for obs in results if obs is not None]

    def fallback_observation(self, region: Region, today: Optional[date] = None) -> Observation:
        """Synthetic observation used when AirNow is unavailable."""
        today = today or self._clock.today()
        aqi = fallback_aqi(region, today, self._fallback_jitter)
        return Observation(
            region_id=region.id,
            aqi=aqi,
            pollutant=self._default_pollutant,
            category=AQICategory.from_aqi(aqi).value,
            observed_date=today,
            reporting_area=region.display_name,
            provenance=Provenance.FALLBACK,
        )

    async def _request(self, region: Region) -> list[dict[str, Any]]:
        async with self._semaphore:
            await self._wait_for_dispatch_slot()

            loop = asyncio.get_running_loop()
            started = loop.time()
            self._in_flight += 1
            self._stats["requests"] += 1
            self._stats["peak_in_flight"] = max(self._stats["peak_in_flight"], self._in_flight)
            self._metrics.request_started()
            logger.debug(
                "Fetching AQI for %s (%.4f, %.4f) [%d in flight]",
                region.name,
                region.latitude,
                region.longitude,
                self._in_flight,
            )
            try:
                return await self._client.get_current_observations(
                    region.latitude, region.longitude, region.radius_miles
                )
            finally:
                self._in_flight -= 1
                self._metrics.request_finished(loop.time() - started)

    async def _wait_for_dispatch_slot(self) -> None:
        """Space dispatches at least ``spacing_seconds`` apart, even with free slots."""
        async with self._dispatch_lock:
            loop = asyncio.get_running_loop()
            if self._last_dispatch is not None:
                delay = self._last_dispatch + self._spacing - loop.time()
                if delay > 0:
                    await asyncio.sleep(delay)
            self._last_dispatch = loop.time()

import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pytest

from colorado_air_quality.api.gateway import FetchGateway
from colorado_air_quality.collection.collector import HistoricalCollector
from colorado_air_quality.collection.store import HistoryStore, StoreError
from colorado_air_quality.models import HistoricalRecord, Provenance, Region


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: datetime):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def today(self) -> date:
        return self._now.date()

    def timestamp(self) -> float:
        return self._now.timestamp()

    def advance(self, **kwargs) -> None:
        self._now += timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self._now = when


class StubAirNowClient:
    """
    Stands in for AirNowClient. Payloads are keyed by latitude; a value that is
    an exception instance is raised instead of returned.
    """

    def __init__(self, payloads: Optional[dict[float, Any]] = None, delay: float = 0.0):
        self.payloads = payloads or {}
        self.delay = delay
        self.calls: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.start_times: list[float] = []

    async def get_current_observations(self, latitude, longitude, distance_miles):
        loop = asyncio.get_running_loop()
        self.calls.append(latitude)
        self.start_times.append(loop.time())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            payload = self.payloads.get(latitude, [])
            if isinstance(payload, Exception):
                raise payload
            return payload
        finally:
            self.in_flight -= 1

    async def aclose(self):
        return None


class MemoryBackend:
    """
    In-memory blob backend. ``fail_writes`` simulates a full disk;
    ``failing_reads`` makes that many upcoming reads raise.
    """

    def __init__(self, payload: Optional[str] = None):
        self.payload = payload
        self.fail_writes = False
        self.failing_reads = 0
        self.writes = 0

    def read(self) -> Optional[str]:
        if self.failing_reads > 0:
            self.failing_reads -= 1
            raise StoreError("redis timeout")
        return self.payload

    def write(self, payload: str) -> None:
        if self.fail_writes:
            raise StoreError("disk full")
        self.writes += 1
        self.payload = payload


def airnow_entry(parameter: str, aqi: int, category: Optional[str] = None, day: str = "2025-01-03 "):
    entry = {
        "DateObserved": day,
        "HourObserved": 9,
        "LocalTimeZone": "MST",
        "ReportingArea": "Denver",
        "StateCode": "CO",
        "ParameterName": parameter,
        "AQI": aqi,
    }
    if category:
        entry["Category"] = {"Number": 2, "Name": category}
    return entry


def make_record(region_id: str, day: date, aqi: int = 40, pollutant: str = "PM2.5") -> HistoricalRecord:
    return HistoricalRecord(
        date=day,
        region_id=region_id,
        region_name=region_id.title(),
        aqi=aqi,
        pollutant=pollutant,
        category="Good",
        observed_date=day,
        provenance=Provenance.REAL,
        emergency_visit_estimate=10,
        hospitalization_estimate=5,
        asthma_rate_estimate=7.8,
        asthma_population_estimate=780,
    )


@pytest.fixture
def regions() -> tuple[Region, ...]:
    return (
        Region(
            id="denver-metro",
            name="Denver Metro",
            display_name="Denver Metropolitan Area",
            latitude=39.7392,
            longitude=-104.9903,
            radius_miles=30,
            population=2963821,
            baseline_aqi=52,
        ),
        Region(
            id="pueblo",
            name="Pueblo",
            display_name="Pueblo Area",
            latitude=38.2544,
            longitude=-104.6091,
            radius_miles=20,
            population=168162,
            baseline_aqi=55,
        ),
        Region(
            id="aspen",
            name="Aspen",
            display_name="Roaring Fork Valley - Aspen",
            latitude=39.1911,
            longitude=-106.8175,
            radius_miles=15,
            population=25000,
            baseline_aqi=35,
        ),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def stub_client(regions) -> StubAirNowClient:
    return StubAirNowClient(
        {
            regions[0].latitude: [airnow_entry("PM2.5", 85, "Moderate")],
            regions[1].latitude: [airnow_entry("O3", 60, "Moderate")],
            regions[2].latitude: [airnow_entry("PM2.5", 20, "Good")],
        }
    )


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> HistoryStore:
    return HistoryStore(backend)


@pytest.fixture
def gateway(stub_client, clock) -> FetchGateway:
    return FetchGateway(stub_client, clock, spacing_seconds=0)


@pytest.fixture
def collector(regions, gateway, store, clock) -> HistoricalCollector:
    import random

    return HistoricalCollector(regions, gateway, store, clock, rng=random.Random(7))

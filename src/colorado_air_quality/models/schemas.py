"""
Core data schemas for the Colorado regional collection pipeline.

Defines regions, observations and the persisted historical records.
"""

from datetime import date as date_type
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AQICategory(str, Enum):
    """
    EPA Air Quality Index categories.

    Thresholds (AQI):
    - Good: 0-50
    - Moderate: 51-100
    - Unhealthy for Sensitive Groups: 101-150
    - Unhealthy: 151-200
    - Very Unhealthy: 201-300
    - Hazardous: > 300
    """

    GOOD = "Good"
    MODERATE = "Moderate"
    UNHEALTHY_SENSITIVE = "Unhealthy for Sensitive Groups"
    UNHEALTHY = "Unhealthy"
    VERY_UNHEALTHY = "Very Unhealthy"
    HAZARDOUS = "Hazardous"

    @classmethod
    def from_aqi(cls, aqi: float) -> "AQICategory":
        """
        Classify an AQI value into its EPA category.

        Args:
            aqi: Air Quality Index value

        Returns:
            AQICategory
        """
        if aqi <= 50:
            return cls.GOOD
        elif aqi <= 100:
            return cls.MODERATE
        elif aqi <= 150:
            return cls.UNHEALTHY_SENSITIVE
        elif aqi <= 200:
            return cls.UNHEALTHY
        elif aqi <= 300:
            return cls.VERY_UNHEALTHY
        else:
            return cls.HAZARDOUS

    @property
    def advisory(self) -> str:
        """Get health advisory for people with asthma."""
        advisories = {
            AQICategory.GOOD: "Air quality is satisfactory",
            AQICategory.MODERATE: "Unusually sensitive people should limit prolonged exertion",
            AQICategory.UNHEALTHY_SENSITIVE: "People with asthma should reduce outdoor exertion",
            AQICategory.UNHEALTHY: "Everyone should reduce prolonged outdoor exertion",
            AQICategory.VERY_UNHEALTHY: "People with asthma should avoid all outdoor exertion",
            AQICategory.HAZARDOUS: "Everyone should avoid all outdoor activity",
        }
        return advisories[self]


class Provenance(str, Enum):
    """Where an observation came from."""

    REAL = "real"
    FALLBACK = "fallback"


class Region(BaseModel):
    """Static monitoring region. Loaded once at startup."""

    id: str = Field(..., min_length=1, description="Stable region key")
    name: str
    display_name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius_miles: int = Field(..., gt=0, description="AirNow search distance")
    population: int = Field(..., ge=0)
    baseline_aqi: int = Field(default=45, ge=0, description="Fallback AQI baseline")
    description: str = ""
    major_cities: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Observation(BaseModel):
    """Current observation for one region. Transient, owned by the caller."""

    region_id: str
    aqi: int = Field(..., ge=0)
    pollutant: str
    category: str
    observed_date: date_type
    reporting_area: Optional[str] = None
    provenance: Provenance = Provenance.REAL

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "region_id": "denver-metro",
                "aqi": 85,
                "pollutant": "PM2.5",
                "category": "Moderate",
                "observed_date": "2025-01-03",
                "reporting_area": "Denver",
                "provenance": "real",
            }
        },
    )

    @property
    def is_fallback(self) -> bool:
        return self.provenance == Provenance.FALLBACK


class HistoricalRecord(BaseModel):
    """
    One persisted day of data for a (region, pollutant) pair.

    Derived estimates are pure functions of ``aqi`` and region population.
    """

    date: date_type = Field(..., description="Collection day the record belongs to")
    region_id: str
    region_name: str
    aqi: int = Field(..., ge=0)
    pollutant: str
    category: str
    observed_date: date_type
    provenance: Provenance = Provenance.REAL
    emergency_visit_estimate: int = Field(..., ge=0)
    hospitalization_estimate: int = Field(..., ge=0)
    asthma_rate_estimate: float = Field(..., ge=0, le=100, description="Percent")
    asthma_population_estimate: int = Field(default=0, ge=0)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "date": "2025-01-03",
                "region_id": "pueblo",
                "region_name": "Pueblo",
                "aqi": 55,
                "pollutant": "PM2.5",
                "category": "Moderate",
                "observed_date": "2025-01-03",
                "provenance": "fallback",
                "emergency_visit_estimate": 18,
                "hospitalization_estimate": 9,
                "asthma_rate_estimate": 7.8,
                "asthma_population_estimate": 13117,
            }
        }
    )


class CollectionStatus(BaseModel):
    """Derived view over the persisted series. Never stored."""

    last_collection_date: Optional[date_type] = None
    total_days: int = 0
    series_count: int = 0


class AutomaticCollectionStatus(BaseModel):
    """Operator-facing summary of the daily collection schedule."""

    is_active: bool
    next_collection_time: str
    last_collection_date: Optional[date_type] = None
    data_freshness: str

"""
EPA AirNow API Client.

Fetches current air quality observations around a latitude/longitude.

API Documentation: https://docs.airnowapi.org/CurrentObservationsByLatLon/docs
Requires an API key, passed as the ``API_KEY`` query parameter.
"""

import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


# =============================================================================
# Data Models (Pydantic)
# =============================================================================

class AirNowCategory(BaseModel):
    """AQI category as reported by AirNow."""

    number: Optional[int] = Field(None, alias="Number")
    name: Optional[str] = Field(None, alias="Name")


class AirNowReading(BaseModel):
    """Single pollutant reading from the current-observation endpoint."""

    parameter_name: str = Field(..., alias="ParameterName", description="e.g. PM2.5, O3")
    aqi: int = Field(..., alias="AQI", gt=0)
    category: Optional[AirNowCategory] = Field(None, alias="Category")
    date_observed: Optional[date] = Field(None, alias="DateObserved")
    hour_observed: Optional[int] = Field(None, alias="HourObserved", ge=0, le=23)
    reporting_area: Optional[str] = Field(None, alias="ReportingArea")
    state_code: Optional[str] = Field(None, alias="StateCode")
    latitude: Optional[float] = Field(None, alias="Latitude")
    longitude: Optional[float] = Field(None, alias="Longitude")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "DateObserved": "2025-01-03 ",
                "HourObserved": 9,
                "LocalTimeZone": "MST",
                "ReportingArea": "Denver",
                "StateCode": "CO",
                "Latitude": 39.7392,
                "Longitude": -104.9903,
                "ParameterName": "PM2.5",
                "AQI": 85,
                "Category": {"Number": 2, "Name": "Moderate"},
            }
        },
    )

    @field_validator("date_observed", mode="before")
    @classmethod
    def strip_date(cls, v: Any) -> Any:
        # AirNow pads DateObserved with a trailing space
        if isinstance(v, str):
            return v.strip() or None
        return v


# =============================================================================
# Errors
# =============================================================================

class AirNowError(Exception):
    """Base error for AirNow requests."""


class RateLimitError(AirNowError):
    """AirNow answered 429 Too Many Requests."""


class AirNowResponseError(AirNowError):
    """Non-success status or a body that is not an observation list."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# AirNow Client
# =============================================================================

class AirNowClient:
    """
    Client for the AirNow current-observation API.

    Returns raw observation entries; choosing a representative reading is the
    gateway's job.
    """

    OBSERVATION_PATH = "/aq/observation/latLong/current/"
    USER_AGENT = "Colorado-Air-Quality-Collector/1.0"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://www.airnowapi.org",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        self._client = self._new_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, creating if needed."""
        if self._client is None:
            self._client = self._new_client()
        return self._client

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json", "User-Agent": self.USER_AGENT},
        )

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_current_observations(
        self,
        latitude: float,
        longitude: float,
        distance_miles: int,
    ) -> list[dict[str, Any]]:
        """
        Fetch the current observation set for a location.

        Args:
            latitude: Search centroid latitude
            longitude: Search centroid longitude
            distance_miles: Search radius in miles

        Returns:
            Raw observation entries (one per pollutant reported nearby).

        Raises:
            RateLimitError: on HTTP 429
            AirNowResponseError: on other non-2xx statuses or a non-list body
            httpx.HTTPError: on transport failures
        """
        params = {
            "format": "application/json",
            "latitude": latitude,
            "longitude": longitude,
            "distance": distance_miles,
            "API_KEY": self.api_key or "",
        }

        response = await self.client.get(self.base_url + self.OBSERVATION_PATH, params=params)

        if response.status_code == 429:
            raise RateLimitError(f"Rate limit exceeded: {response.text[:200]}")
        if not response.is_success:
            if response.status_code == 401:
                logger.error("AirNow authentication failed, check CAQ_AIRNOW_API_KEY")
            raise AirNowResponseError(
                f"AirNow API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AirNowResponseError(f"Invalid JSON body: {e}", response.status_code) from e

        if not isinstance(data, list):
            raise AirNowResponseError(
                f"Expected a list of observations, got {type(data).__name__}",
                response.status_code,
            )

        logger.debug(
            "AirNow returned %d entries for (%.4f, %.4f)", len(data), latitude, longitude
        )
        return data

"""
Tests for the AirNow API client.

Run with: pytest tests/test_api_clients.py -v
"""

import os

import httpx
import pytest

from colorado_air_quality.api import AirNowClient, AirNowResponseError, RateLimitError
from colorado_air_quality.api.airnow_client import AirNowReading
from colorado_air_quality.models import AQICategory
from conftest import airnow_entry


def client_for(handler) -> AirNowClient:
    return AirNowClient(
        api_key="TEST-KEY",
        base_url="https://airnow.test/",
        transport=httpx.MockTransport(handler),
    )


# =============================================================================
# AirNow Client Tests
# =============================================================================

class TestAirNowClient:
    """Tests for the current-observation request."""

    @pytest.mark.asyncio
    async def test_request_parameters(self):
        """Coordinates, radius and key are sent as query parameters."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[airnow_entry("PM2.5", 42)])

        async with client_for(handler) as client:
            entries = await client.get_current_observations(39.7392, -104.9903, 30)

        assert seen["path"] == "/aq/observation/latLong/current/"
        assert seen["params"]["latitude"] == "39.7392"
        assert seen["params"]["longitude"] == "-104.9903"
        assert seen["params"]["distance"] == "30"
        assert seen["params"]["API_KEY"] == "TEST-KEY"
        assert seen["params"]["format"] == "application/json"
        assert entries[0]["AQI"] == 42

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        """429 is reported as RateLimitError."""
        async with client_for(lambda r: httpx.Response(429, text="slow down")) as client:
            with pytest.raises(RateLimitError):
                await client.get_current_observations(39.7, -104.9, 30)

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Non-2xx carries the status code."""
        async with client_for(lambda r: httpx.Response(503)) as client:
            with pytest.raises(AirNowResponseError) as exc_info:
                await client.get_current_observations(39.7, -104.9, 30)
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_non_list_body(self):
        """A JSON object instead of a list is a malformed payload."""
        async with client_for(lambda r: httpx.Response(200, json={"error": "x"})) as client:
            with pytest.raises(AirNowResponseError):
                await client.get_current_observations(39.7, -104.9, 30)

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        async with client_for(lambda r: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(AirNowResponseError):
                await client.get_current_observations(39.7, -104.9, 30)


class TestAirNowReading:
    """Tests for raw entry parsing."""

    def test_parses_padded_date(self):
        reading = AirNowReading.model_validate(airnow_entry("O3", 61, "Moderate"))
        assert reading.date_observed.isoformat() == "2025-01-03"
        assert reading.parameter_name == "O3"
        assert reading.category.name == "Moderate"

    def test_rejects_missing_aqi(self):
        """AirNow reports -1 when a monitor has no AQI."""
        with pytest.raises(ValueError):
            AirNowReading.model_validate(airnow_entry("PM10", -1))


# =============================================================================
# AQI Category Tests
# =============================================================================

class TestAQICategory:
    """Tests for EPA AQI categorization."""

    def test_band_edges(self):
        assert AQICategory.from_aqi(0) == AQICategory.GOOD
        assert AQICategory.from_aqi(50) == AQICategory.GOOD
        assert AQICategory.from_aqi(51) == AQICategory.MODERATE
        assert AQICategory.from_aqi(100) == AQICategory.MODERATE
        assert AQICategory.from_aqi(101) == AQICategory.UNHEALTHY_SENSITIVE
        assert AQICategory.from_aqi(150) == AQICategory.UNHEALTHY_SENSITIVE
        assert AQICategory.from_aqi(151) == AQICategory.UNHEALTHY
        assert AQICategory.from_aqi(201) == AQICategory.VERY_UNHEALTHY
        assert AQICategory.from_aqi(301) == AQICategory.HAZARDOUS

    def test_labels_match_airnow(self):
        assert AQICategory.UNHEALTHY_SENSITIVE.value == "Unhealthy for Sensitive Groups"

    def test_advisory_text(self):
        for category in AQICategory:
            assert len(category.advisory) > 0


# =============================================================================
# Integration Test (requires network and an API key)
# =============================================================================

@pytest.mark.integration
@pytest.mark.skipif(not os.getenv("CAQ_AIRNOW_API_KEY"), reason="CAQ_AIRNOW_API_KEY not set")
class TestIntegration:
    """Integration tests requiring network access."""

    @pytest.mark.asyncio
    async def test_airnow_denver(self):
        async with AirNowClient(os.environ["CAQ_AIRNOW_API_KEY"]) as client:
            entries = await client.get_current_observations(39.7392, -104.9903, 30)

        assert isinstance(entries, list)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

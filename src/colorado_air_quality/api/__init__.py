"""Clients for the AirNow observation API."""

from .airnow_client import AirNowClient, AirNowError, AirNowResponseError, RateLimitError
from .gateway import FetchGateway, select_peak_observation

__all__ = [
    "AirNowClient",
    "AirNowError",
    "AirNowResponseError",
    "FetchGateway",
    "RateLimitError",
    "select_peak_observation",
]

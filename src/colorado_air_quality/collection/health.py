"""
Asthma health-impact estimates.

Pure functions of AQI and regional population. Constants are statewide
Colorado averages; they scale linearly once AQI passes 50.
"""

import random
from typing import Optional

# Per-person daily base rates
EMERGENCY_VISIT_BASE_RATE = 0.0001
HOSPITALIZATION_BASE_RATE = 0.00005

# Colorado adult current-asthma prevalence
COLORADO_ASTHMA_RATE = 0.078

# Typical level of each pollutant relative to the peak reported AQI
POLLUTANT_SCALING: dict[str, float] = {
    "PM2.5": 1.0,
    "Ozone": 0.85,
    "PM10": 1.15,
    "NO2": 0.75,
    "SO2": 0.6,
    "CO": 0.5,
}


def aqi_multiplier(aqi: int) -> float:
    return max(1.0, aqi / 50)


def estimate_emergency_visits(aqi: int, population: int) -> int:
    return round(population * EMERGENCY_VISIT_BASE_RATE * aqi_multiplier(aqi))


def estimate_hospitalizations(aqi: int, population: int) -> int:
    return round(population * HOSPITALIZATION_BASE_RATE * aqi_multiplier(aqi))


def estimate_asthma_rate() -> float:
    """Percent of the population with current asthma (statewide prevalence)."""
    return round(COLORADO_ASTHMA_RATE * 100, 2)


def estimate_asthma_population(population: int) -> int:
    return round(population * COLORADO_ASTHMA_RATE)


def estimate_pollutant_aqi(
    peak_aqi: int,
    pollutant: str,
    jitter: float = 0.1,
    rng: Optional[random.Random] = None,
) -> int:
    """
    Derive a per-pollutant AQI from the peak reading.

    Applies the scaling table, then a uniform variation within ``±jitter``
    (fractional). Never returns less than 1.
    """
    rng = rng or random.Random()
    scaled = round(peak_aqi * POLLUTANT_SCALING.get(pollutant, 1.0))
    variation = rng.uniform(-jitter, jitter) if jitter > 0 else 0.0
    return max(1, round(scaled * (1 + variation)))

"""Static reference data."""

from .regions import (
    COLORADO_REGIONS,
    get_region_by_id,
    get_region_by_name,
    load_regions,
    total_population,
)

__all__ = [
    "COLORADO_REGIONS",
    "get_region_by_id",
    "get_region_by_name",
    "load_regions",
    "total_population",
]

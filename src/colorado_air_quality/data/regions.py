"""
Colorado monitoring regions.

Regional coverage areas queried against AirNow by centroid and search radius.
The bundled table can be replaced with a JSON file (``CAQ_REGIONS_FILE``).
"""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from colorado_air_quality.models import Region

logger = logging.getLogger(__name__)

_region_list = TypeAdapter(list[Region])


COLORADO_REGIONS: tuple[Region, ...] = (
    Region(
        id="denver-metro",
        name="Denver Metro",
        display_name="Denver Metropolitan Area",
        latitude=39.7392,
        longitude=-104.9903,
        radius_miles=30,
        population=2963821,
        baseline_aqi=52,
        description="Denver and surrounding metropolitan area",
        major_cities=["Denver", "Aurora", "Lakewood", "Thornton", "Westminster", "Arvada"],
    ),
    Region(
        id="colorado-springs",
        name="Colorado Springs",
        display_name="Colorado Springs Area",
        latitude=38.8339,
        longitude=-104.8214,
        radius_miles=25,
        population=715522,
        baseline_aqi=48,
        major_cities=["Colorado Springs", "Fountain", "Security-Widefield", "Manitou Springs"],
    ),
    Region(
        id="fort-collins-boulder",
        name="Fort Collins/Boulder",
        display_name="Northern Front Range",
        latitude=40.5853,
        longitude=-105.0844,
        radius_miles=25,
        population=650000,
        major_cities=["Fort Collins", "Boulder", "Longmont", "Loveland", "Broomfield"],
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
        major_cities=["Pueblo", "Pueblo West", "Boone"],
    ),
    Region(
        id="grand-junction",
        name="Grand Junction",
        display_name="Western Slope - Grand Junction",
        latitude=39.0639,
        longitude=-108.5506,
        radius_miles=25,
        population=155000,
        major_cities=["Grand Junction", "Fruita", "Palisade", "Clifton"],
    ),
    Region(
        id="durango",
        name="Durango",
        display_name="Southwest Colorado - Durango",
        latitude=37.2753,
        longitude=-107.8801,
        radius_miles=20,
        population=55000,
        baseline_aqi=35,
        major_cities=["Durango", "Cortez", "Bayfield"],
    ),
    Region(
        id="vail-eagle",
        name="Vail/Eagle",
        display_name="Central Mountains - Vail Valley",
        latitude=39.6403,
        longitude=-106.3742,
        radius_miles=20,
        population=85000,
        baseline_aqi=35,
        major_cities=["Vail", "Eagle", "Avon", "Edwards", "Minturn"],
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
        major_cities=["Aspen", "Snowmass Village", "Basalt", "Carbondale"],
    ),
    Region(
        id="steamboat-springs",
        name="Steamboat Springs",
        display_name="Northwest Mountains - Steamboat",
        latitude=40.4850,
        longitude=-106.8317,
        radius_miles=15,
        population=35000,
        baseline_aqi=35,
        major_cities=["Steamboat Springs", "Craig", "Hayden"],
    ),
    Region(
        id="greeley",
        name="Greeley",
        display_name="Northeast Colorado - Greeley",
        latitude=40.4233,
        longitude=-104.7091,
        radius_miles=20,
        population=125000,
        major_cities=["Greeley", "Evans", "Windsor", "Eaton"],
    ),
    Region(
        id="sterling",
        name="Sterling",
        display_name="Eastern Plains - Sterling",
        latitude=40.6256,
        longitude=-103.2077,
        radius_miles=25,
        population=45000,
        major_cities=["Sterling", "Fort Morgan", "Brush", "Yuma"],
    ),
    Region(
        id="alamosa",
        name="Alamosa",
        display_name="San Luis Valley - Alamosa",
        latitude=37.4694,
        longitude=-105.8700,
        radius_miles=20,
        population=55000,
        major_cities=["Alamosa", "Monte Vista", "Del Norte", "Center"],
    ),
    Region(
        id="salida",
        name="Salida",
        display_name="Arkansas Valley - Salida",
        latitude=38.5347,
        longitude=-106.0042,
        radius_miles=15,
        population=25000,
        baseline_aqi=35,
        major_cities=["Salida", "Buena Vista", "Poncha Springs"],
    ),
    Region(
        id="glenwood-springs",
        name="Glenwood Springs",
        display_name="Western Mountains - Glenwood",
        latitude=39.5505,
        longitude=-107.3248,
        radius_miles=15,
        population=35000,
        baseline_aqi=35,
        major_cities=["Glenwood Springs", "Rifle", "New Castle", "Silt"],
    ),
    Region(
        id="trinidad",
        name="Trinidad",
        display_name="Southeast Colorado - Trinidad",
        latitude=37.1692,
        longitude=-104.5011,
        radius_miles=20,
        population=25000,
        major_cities=["Trinidad", "La Junta", "Lamar", "Las Animas"],
    ),
)


def load_regions(path: Optional[Path] = None) -> tuple[Region, ...]:
    """
    Load the region table.

    Args:
        path: Optional JSON file holding a list of region objects.

    Returns:
        Regions in collection order. The bundled table is used when no path
        is given or the file cannot be read.
    """
    if path is None:
        return COLORADO_REGIONS

    try:
        regions = _region_list.validate_python(json.loads(Path(path).read_text()))
    except (OSError, ValueError, ValidationError) as e:
        logger.error("Failed to load regions from %s, using bundled table: %s", path, e)
        return COLORADO_REGIONS

    ids = [r.id for r in regions]
    if not regions or len(set(ids)) != len(ids):
        logger.error("Region file %s is empty or has duplicate ids, using bundled table", path)
        return COLORADO_REGIONS

    logger.info("Loaded %d regions from %s", len(regions), path)
    return tuple(regions)


def get_region_by_id(regions: tuple[Region, ...], region_id: str) -> Optional[Region]:
    return next((r for r in regions if r.id == region_id), None)


def get_region_by_name(regions: tuple[Region, ...], name: str) -> Optional[Region]:
    """Match on short or display name, case-insensitive."""
    needle = name.lower()
    return next(
        (r for r in regions if r.name.lower() == needle or r.display_name.lower() == needle),
        None,
    )


def total_population(regions: tuple[Region, ...]) -> int:
    return sum(r.population for r in regions)

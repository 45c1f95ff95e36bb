"""
Water mask for the operating region.

Provides is_likely_on_water(lat, lon) to suppress land-based station
artifacts. This is a bounding-box heuristic for the northern Gulf of Mexico
coastal models, not an authoritative coastline: anything outside the
operating region is treated as "not ours" and rejected.
"""

import logging
from functools import lru_cache

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Bounding boxes: (lat_min, lat_max, lon_min, lon_max, name)
# ---------------------------------------------------------------------------
OPERATING_REGION = (28.0, 31.0, -91.0, -86.0, "Northern Gulf of Mexico")

# Exclusions use strict inequalities so their edges stay water.
LAND_EXCLUSIONS = [
    (29.0, 29.8, -90.0, -89.0, "Mississippi River Delta"),
]

# Reference point for the depth estimate (roughly the delta mouth)
DEPTH_REFERENCE = (29.5, -90.0)
DEPTH_PER_DEGREE_M = 100.0
MAX_ESTIMATED_DEPTH_M = 3000.0


@lru_cache(maxsize=200_000)
def is_likely_on_water(lat: float, lon: float) -> bool:
    """
    Check if a point is plausibly open water inside the operating region.

    Args:
        lat: Latitude (-90 to 90)
        lon: Longitude (-180 to 180)

    Returns:
        True inside the region and outside every land exclusion
    """
    lat_min, lat_max, lon_min, lon_max, _ = OPERATING_REGION
    if not (lat_min <= lat <= lat_max and lon_min <= lon <= lon_max):
        return False

    for ex_lat_min, ex_lat_max, ex_lon_min, ex_lon_max, _ in LAND_EXCLUSIONS:
        if ex_lat_min < lat < ex_lat_max and ex_lon_min < lon < ex_lon_max:
            return False

    return True


def estimate_water_depth(lat: float, lon: float) -> float:
    """Rough water depth (m) from the distance to the reference point, capped."""
    ref_lat, ref_lon = DEPTH_REFERENCE
    distance_deg = min(abs(lat - ref_lat), abs(lon - ref_lon))
    return min(distance_deg * DEPTH_PER_DEGREE_M, MAX_ESTIMATED_DEPTH_M)


def get_water_mask_status() -> dict:
    """Describe the heuristic in use and its cache occupancy."""
    return {
        "method": "bounding box with land exclusions",
        "region": OPERATING_REGION[4],
        "exclusions": [name for *_, name in LAND_EXCLUSIONS],
        "cache_size": is_likely_on_water.cache_info().currsize,
    }

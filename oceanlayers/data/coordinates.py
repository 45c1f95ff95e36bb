"""
Coordinate quality reporting.

Classifies raw rows as having usable or unusable positions and summarizes
the result for debugging a fetch: counts, percentage, per-axis bounds and a
few sample rows of each kind.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from oceanlayers.metrics import timed
from oceanlayers.records import (
    DIRECTION,
    LAT,
    LON,
    SPEED,
    WIND_DIRECTION,
    ensure_rows,
    row_coordinates,
)

logger = logging.getLogger(__name__)

MAX_VALID_SAMPLES = 10
MAX_INVALID_SAMPLES = 5

# Columns reported by field_presence() when no explicit list is given
DEFAULT_PRESENCE_FIELDS = (
    "lat", "lon", "depth", "time", "temp", "salinity", "pressure_dbars",
    "ssh", "sound_speed_ms", "nspeed", "direction", "ndirection",
)


@dataclass
class AxisBounds:
    """Min/max/range of one coordinate axis over the valid rows."""
    min: float
    max: float

    @property
    def range(self) -> float:
        return self.max - self.min

    def to_dict(self) -> dict:
        return {"min": self.min, "max": self.max, "range": self.range}


@dataclass
class CoordinateReport:
    """Result of validate_coordinates()."""
    total: int
    valid: int
    invalid: int
    valid_percentage: float
    bounds: Optional[Dict[str, AxisBounds]] = None
    sample_valid: List[dict] = field(default_factory=list)
    sample_invalid: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "valid": self.valid,
            "invalid": self.invalid,
            "valid_percentage": self.valid_percentage,
            "bounds": (
                {axis: b.to_dict() for axis, b in self.bounds.items()}
                if self.bounds is not None else None
            ),
            "sample_valid": list(self.sample_valid),
            "sample_invalid": list(self.sample_invalid),
        }


@timed("validate_coordinates")
def validate_coordinates(rows: Sequence[Mapping]) -> CoordinateReport:
    """
    Count rows with usable coordinates.

    A row is valid iff lat and lon are present, parse to finite numbers,
    |lat| <= 90 and |lon| <= 180. Samples echo the raw lat/lon values.

    Args:
        rows: Raw measurement rows

    Returns:
        CoordinateReport; valid + invalid always equals total
    """
    ensure_rows(rows)

    valid = 0
    lat_min = lon_min = float("inf")
    lat_max = lon_max = float("-inf")
    sample_valid: List[dict] = []
    sample_invalid: List[dict] = []

    for row in rows:
        coords = row_coordinates(row)
        sample = {"lat": row.get(LAT), "lon": row.get(LON)}
        if coords is None:
            if len(sample_invalid) < MAX_INVALID_SAMPLES:
                sample_invalid.append(sample)
            continue

        valid += 1
        lat, lon = coords
        lat_min, lat_max = min(lat_min, lat), max(lat_max, lat)
        lon_min, lon_max = min(lon_min, lon), max(lon_max, lon)
        if len(sample_valid) < MAX_VALID_SAMPLES:
            sample_valid.append(sample)

    total = len(rows)
    invalid = total - valid
    percentage = round(valid / total * 100, 1) if total else 0.0
    bounds = None
    if valid:
        bounds = {
            "latitude": AxisBounds(lat_min, lat_max),
            "longitude": AxisBounds(lon_min, lon_max),
        }

    if invalid:
        logger.debug(f"Coordinate check: {invalid}/{total} rows have unusable positions")

    return CoordinateReport(
        total=total,
        valid=valid,
        invalid=invalid,
        valid_percentage=percentage,
        bounds=bounds,
        sample_valid=sample_valid,
        sample_invalid=sample_invalid,
    )


def field_presence(
    rows: Sequence[Mapping],
    keys: Optional[Iterable[str]] = None,
) -> dict:
    """
    Report how often each column carries a non-null value.

    Useful when a vector layer comes back empty: it shows whether the
    magnitude/direction pair was ever populated together.
    """
    ensure_rows(rows)
    keys = tuple(keys) if keys is not None else DEFAULT_PRESENCE_FIELDS
    total = len(rows)

    counts = {key: 0 for key in keys}
    current_pairs = 0
    wind_pairs = 0
    for row in rows:
        for key in keys:
            if row.get(key) is not None:
                counts[key] += 1
        has_speed = row.get(SPEED) is not None
        if has_speed and row.get(DIRECTION) is not None:
            current_pairs += 1
        if has_speed and row.get(WIND_DIRECTION) is not None:
            wind_pairs += 1

    def pct(n: int) -> float:
        return round(n / total * 100, 1) if total else 0.0

    return {
        "total": total,
        "fields": {
            key: {"count": count, "percentage": pct(count)}
            for key, count in counts.items()
        },
        "complete_current_pairs": current_pairs,
        "complete_wind_pairs": wind_pairs,
    }

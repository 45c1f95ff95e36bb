"""
Typed access to loosely-typed measurement rows.

Rows arrive from the fetch layer as plain mappings with whatever columns the
query returned. Nothing here assumes a field is present: every accessor
returns None for a missing, null, NaN or unparseable value and the caller
decides whether that excludes the row.
"""

import logging
import math
import numbers
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from oceanlayers.config import settings
from oceanlayers.errors import InvalidInputError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Column names produced by the upstream query
# ---------------------------------------------------------------------------
LAT = "lat"
LON = "lon"
DEPTH = "depth"
TIME = "time"
TEMPERATURE = "temp"
SALINITY = "salinity"
PRESSURE = "pressure_dbars"
SEA_SURFACE_HEIGHT = "ssh"
SOUND_SPEED = "sound_speed_ms"
SPEED = "nspeed"
DIRECTION = "direction"
WIND_DIRECTION = "ndirection"
STATUS = "status"
MODEL = "model"
AREA = "area"
SOURCE_FILE = "_source_file"
LOADED_AT = "_loaded_at"

# Sort key for rows without a usable timestamp: older than anything real.
MIN_TIME = datetime.min.replace(tzinfo=timezone.utc)


def ensure_rows(rows: Any, argument: str = "rows") -> Sequence[Mapping]:
    """Reject anything that is not a list of records.

    Raises:
        InvalidInputError: ``rows`` is not a list/tuple, or holds an element
            that is not a mapping.
    """
    if not isinstance(rows, (list, tuple)):
        raise InvalidInputError(argument, f"expected a list of records, got {type(rows).__name__}")
    for i, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise InvalidInputError(
                argument, f"element {i} is {type(row).__name__}, expected a mapping"
            )
    if len(rows) > settings.upstream_row_cap:
        logger.debug(f"{argument}: {len(rows)} rows exceed the upstream cap of {settings.upstream_row_cap}")
    return rows


def to_float(value: Any) -> Optional[float]:
    """Parse a numeric cell. Returns None for null, NaN, inf, bools and junk."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        raw = value
    elif isinstance(value, str):
        raw = value.strip()
    else:
        return None
    try:
        result = float(raw)
    except (OverflowError, ValueError):
        return None
    return result if math.isfinite(result) else None


def parse_time(value: Any) -> Optional[datetime]:
    """Parse a timestamp cell into an aware datetime (naive values are UTC).

    Accepts ISO-8601 strings (a trailing ``Z`` included), datetimes and epoch
    seconds.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, numbers.Real):
        seconds = to_float(value)
        if seconds is None:
            return None
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_sort_key(row: Mapping) -> datetime:
    """Ascending-time sort key; rows without a timestamp sort first."""
    return parse_time(row.get(TIME)) or MIN_TIME


def is_valid_coordinate(lat: Optional[float], lon: Optional[float]) -> bool:
    return lat is not None and lon is not None and abs(lat) <= 90 and abs(lon) <= 180


def row_coordinates(row: Mapping) -> Optional[Tuple[float, float]]:
    """(lat, lon) of a row, or None when either is missing or out of range."""
    lat = to_float(row.get(LAT))
    lon = to_float(row.get(LON))
    if not is_valid_coordinate(lat, lon):
        return None
    return lat, lon


def within_depth(row: Mapping, depth_filter: float, tolerance: float) -> bool:
    """True when the row has a depth within ``tolerance`` of ``depth_filter``."""
    depth = to_float(row.get(DEPTH))
    return depth is not None and abs(depth - depth_filter) <= tolerance


def coordinate_key(lat: float, lon: float, decimals: int = 4) -> str:
    """Fixed-decimal string key used for de-duplicating positions."""
    return f"{lat:.{decimals}f},{lon:.{decimals}f}"


class MeasurementRow:
    """Read-only typed view over one raw row."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping):
        self._data = data

    @property
    def raw(self) -> Mapping:
        return self._data

    @property
    def lat(self) -> Optional[float]:
        return to_float(self._data.get(LAT))

    @property
    def lon(self) -> Optional[float]:
        return to_float(self._data.get(LON))

    @property
    def depth(self) -> Optional[float]:
        return to_float(self._data.get(DEPTH))

    @property
    def time(self) -> Optional[datetime]:
        return parse_time(self._data.get(TIME))

    @property
    def has_valid_coordinates(self) -> bool:
        return is_valid_coordinate(self.lat, self.lon)

    def number(self, key: str) -> Optional[float]:
        return to_float(self._data.get(key))

    def tag(self, key: str) -> Any:
        return self._data.get(key)

    def __repr__(self) -> str:
        return f"MeasurementRow(lat={self.lat}, lon={self.lon}, time={self._data.get(TIME)!r})"


def wrap_rows(rows: Sequence[Mapping]) -> List[MeasurementRow]:
    return [MeasurementRow(row) for row in rows]

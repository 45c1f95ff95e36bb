"""
Time-ordered views of measurement rows.

Chart series, animation frames and the single-point environmental snapshot
shown next to the map cursor. Like the layer processors these functions take
the rows as an explicit argument and keep nothing between calls.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from oceanlayers.fields.reduce import keep_most_recent
from oceanlayers.metrics import timed
from oceanlayers.records import (
    AREA,
    DEPTH,
    DIRECTION,
    LAT,
    LON,
    MODEL,
    PRESSURE,
    SALINITY,
    SEA_SURFACE_HEIGHT,
    SOUND_SPEED,
    SOURCE_FILE,
    SPEED,
    TEMPERATURE,
    TIME,
    WIND_DIRECTION,
    MeasurementRow,
    ensure_rows,
    parse_time,
    time_sort_key,
    wrap_rows,
)
from oceanlayers.schemas import ScalarOptions, parse_options

logger = logging.getLogger(__name__)

SERIES_DEPTH_TOLERANCE = 5.0

# Snapshot selection: strict bounds around the requested point
SNAPSHOT_DEPTH_TOLERANCE = 5.0
SNAPSHOT_POSITION_TOLERANCE = 0.1

DEFAULT_FRAME_KEY = "default"


def format_time_for_display(value: Any) -> str:
    """``HH:MM`` of a timestamp cell, ``"00:00"`` when missing or unparseable."""
    parsed = parse_time(value)
    if parsed is None:
        return "00:00"
    return parsed.strftime("%H:%M")


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def _or_zero(value: Optional[float]) -> float:
    return value if value is not None else 0.0


def _chart_record(row: MeasurementRow) -> dict:
    return {
        "depth": _or_zero(row.depth),
        "time": format_time_for_display(row.tag(TIME)),
        "timestamp": row.time,
        "heading": _or_zero(row.number(DIRECTION)),
        "current_speed": _or_zero(row.number(SPEED)),
        "sound_speed": _or_zero(row.number(SOUND_SPEED)),
        "wave_height": _or_zero(row.number(SEA_SURFACE_HEIGHT)),
        "temperature": row.number(TEMPERATURE),
        "salinity": row.number(SALINITY),
        "pressure": row.number(PRESSURE),
        "latitude": row.lat,
        "longitude": row.lon,
        "source_file": row.tag(SOURCE_FILE),
        "model": row.tag(MODEL),
        "area": row.tag(AREA),
    }


@timed("time_series")
def process_time_series(
    rows: Sequence[Mapping],
    selected_depth: Optional[float] = 0,
    max_points: Optional[int] = None,
    required_key: str = SPEED,
) -> List[dict]:
    """
    Build chart records for the time-series panels.

    Rows must carry ``required_key``. Rows that report a depth must lie within
    ±5 of ``selected_depth``; rows without a depth are kept. Records come out
    in ascending time order, trimmed to the most recent ``max_points``.

    Args:
        rows: Raw measurement rows
        selected_depth: Depth the charts are drawn for (None disables the filter)
        max_points: Keep only this many most recent records
        required_key: Column a row must carry to be charted

    Returns:
        List of chart records (display time, timestamp, heading, speeds,
        wave height, temperature, salinity, pressure, position, provenance)
    """
    ensure_rows(rows)
    opts = parse_options(ScalarOptions, depth_filter=selected_depth, max_points=max_points)

    selected = []
    for row in wrap_rows(rows):
        if not _has_value(row.tag(required_key)):
            continue
        depth = row.depth
        if opts.depth_filter is not None and depth is not None:
            if abs(depth - opts.depth_filter) > SERIES_DEPTH_TOLERANCE:
                continue
        selected.append(row)

    selected.sort(key=lambda r: time_sort_key(r.raw))
    selected = keep_most_recent(selected, opts.max_points)
    logger.debug(f"Time series {required_key}: {len(selected)}/{len(rows)} rows charted")
    return [_chart_record(row) for row in selected]


def group_by_time(rows: Sequence[Mapping]) -> Dict[str, List[Mapping]]:
    """
    Group rows into animation frames keyed by their raw time value.

    Rows without a time go to the ``"default"`` frame. Frames are returned
    sorted by key; rows keep their input order within a frame.
    """
    ensure_rows(rows)
    frames: Dict[str, List[Mapping]] = {}
    for row in rows:
        value = row.get(TIME)
        key = str(value) if _has_value(value) else DEFAULT_FRAME_KEY
        frames.setdefault(key, []).append(row)
    return {key: frames[key] for key in sorted(frames)}


@dataclass
class EnvironmentalSnapshot:
    """Conditions at one point, as shown in the environment panel."""
    timestamp: Optional[datetime] = None
    temperature: Optional[float] = None
    salinity: Optional[float] = None
    current_speed: Optional[float] = None
    current_direction: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_direction: Optional[float] = None
    pressure: Optional[float] = None
    additional: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "temperature": self.temperature,
            "salinity": self.salinity,
            "current_speed": self.current_speed,
            "current_direction": self.current_direction,
            "wind_speed": self.wind_speed,
            "wind_direction": self.wind_direction,
            "pressure": self.pressure,
            "additional": dict(self.additional),
        }


def _select_snapshot_row(
    rows: List[MeasurementRow],
    timestamp: Optional[datetime],
    depth: Optional[float],
    latitude: Optional[float],
    longitude: Optional[float],
) -> MeasurementRow:
    candidates = rows
    if depth is not None:
        candidates = [
            r for r in candidates
            if r.depth is not None and abs(r.depth - depth) < SNAPSHOT_DEPTH_TOLERANCE
        ]
    if latitude is not None and longitude is not None:
        candidates = [
            r for r in candidates
            if r.lat is not None and r.lon is not None
            and abs(r.lat - latitude) < SNAPSHOT_POSITION_TOLERANCE
            and abs(r.lon - longitude) < SNAPSHOT_POSITION_TOLERANCE
        ]
    if not candidates:
        logger.debug("No row near the requested point, using the first row")
        return rows[0]

    if timestamp is None:
        return candidates[0]

    def distance(r: MeasurementRow) -> float:
        # Rows without a time lose to any timed row
        t = r.time
        return abs((t - timestamp).total_seconds()) if t is not None else float("inf")

    return min(candidates, key=distance)


@timed("environmental_snapshot")
def environmental_snapshot(
    rows: Sequence[Mapping],
    timestamp: Any = None,
    depth: Optional[float] = None,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> EnvironmentalSnapshot:
    """
    Pick the row best describing conditions at a point and time.

    Candidates are narrowed to depth within 5 and position within 0.1° on
    both axes (each only when requested), then the candidate nearest in time
    wins. With no candidate left the first row is used. Empty rows give a
    snapshot carrying only the requested timestamp.
    """
    ensure_rows(rows)
    requested_time = parse_time(timestamp)
    if not rows:
        return EnvironmentalSnapshot(timestamp=requested_time)

    row = _select_snapshot_row(wrap_rows(rows), requested_time, depth, latitude, longitude)
    speed = row.number(SPEED)
    return EnvironmentalSnapshot(
        timestamp=row.time or requested_time,
        temperature=row.number(TEMPERATURE),
        salinity=row.number(SALINITY),
        current_speed=speed,
        current_direction=row.number(DIRECTION),
        # The upstream schema has a single speed column shared by both pairs
        wind_speed=speed,
        wind_direction=row.number(WIND_DIRECTION),
        pressure=row.number(PRESSURE),
        additional={
            "ssh": row.tag(SEA_SURFACE_HEIGHT),
            "sound_speed": row.tag(SOUND_SPEED),
            "depth": row.tag(DEPTH),
            "latitude": row.tag(LAT),
            "longitude": row.tag(LON),
            "model": row.tag(MODEL),
            "area": row.tag(AREA),
        },
    )

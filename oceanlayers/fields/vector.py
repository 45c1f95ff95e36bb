"""
Vector field processing for currents and wind.

Rows carry a magnitude and a direction (degrees clockwise from north) under
configurable column names. Unlike the scalar processor, a row qualifies only
when BOTH values are present and finite; a current reading without a
direction cannot be drawn as an arrow.

Directions inside a grid cell are reduced with a circular mean so that, for
example, 350° and 10° average to 0° rather than 180°.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Sequence

import numpy as np

from oceanlayers.config import settings
from oceanlayers.fields.colorscale import color_scale
from oceanlayers.fields.grid import GridBinner
from oceanlayers.fields.reduce import keep_most_recent, latest_per_position
from oceanlayers.fields.registry import resolve_vector_mapping
from oceanlayers.fields.scalar import DEPTH_TOLERANCE
from oceanlayers.metrics import timed
from oceanlayers.records import (
    DEPTH,
    TIME,
    ensure_rows,
    row_coordinates,
    time_sort_key,
    to_float,
    within_depth,
)
from oceanlayers.schemas import VectorGeometryOptions, VectorOptions, parse_options

logger = logging.getLogger(__name__)

# Mean resultant length below which the mean direction is undefined
ZERO_RESULTANT_TOLERANCE = 1e-9

# Decimals kept on a circular mean; snaps 359.99999999999997 to 0
DIRECTION_DECIMALS = 9


def circular_mean(angles: Sequence[float]) -> float:
    """
    Mean of angles in degrees via their unit vectors, in [0, 360).

    Returns 0.0 for an empty input and when the unit vectors cancel out
    (e.g. [0, 180] or [0, 120, 240]), where atan2(0, 0) has no meaning.
    """
    if len(angles) == 0:
        return 0.0

    radians = np.radians(np.asarray(angles, dtype=float))
    mean_sin = float(np.mean(np.sin(radians)))
    mean_cos = float(np.mean(np.cos(radians)))

    if math.hypot(mean_sin, mean_cos) < ZERO_RESULTANT_TOLERANCE:
        logger.debug(f"Circular mean of {len(angles)} opposing directions is undefined, using 0°")
        return 0.0

    degrees = round(math.degrees(math.atan2(mean_sin, mean_cos)), DIRECTION_DECIMALS)
    result = degrees % 360.0
    return 0.0 if result >= 360.0 else result


def direction_components(direction: float) -> tuple:
    """(x, y) unit components of a compass direction: x east, y north."""
    radians = direction * math.pi / 180
    return math.sin(radians), math.cos(radians)


@dataclass
class VectorSample:
    """A qualifying row, or the reduction of every row in one grid cell."""
    lat: float
    lon: float
    direction: float
    magnitude: float
    depth: float
    time: Any
    timestamp: datetime
    count: int = 1

    def to_record(self, index: int) -> dict:
        vector_x, vector_y = direction_components(self.direction)
        return {
            "id": f"vector_{index}",
            "lat": self.lat,
            "lon": self.lon,
            "direction": self.direction,
            "magnitude": self.magnitude,
            "speed": self.magnitude,
            "time": self.time,
            "depth": self.depth,
            "coordinates": [self.lon, self.lat],
            "vector_x": vector_x,
            "vector_y": vector_y,
            "data_point_count": self.count,
        }


def _sample_from_row(row: Mapping, lat: float, lon: float, magnitude: float, direction: float) -> VectorSample:
    depth = to_float(row.get(DEPTH))
    return VectorSample(
        lat=lat,
        lon=lon,
        direction=direction,
        magnitude=magnitude,
        depth=depth if depth is not None else 0.0,
        time=row.get(TIME),
        timestamp=time_sort_key(row),
    )


def _aggregate_cells(samples: List[VectorSample], resolution: float) -> List[VectorSample]:
    binner = GridBinner(resolution)
    for s in samples:
        binner.add(s.lat, s.lon, sample=s)

    reduced = []
    for cell in binner:
        members: List[VectorSample] = cell.values("sample")
        newest = members[0]
        for m in members[1:]:
            if m.timestamp > newest.timestamp:
                newest = m
        reduced.append(VectorSample(
            lat=cell.lat,
            lon=cell.lon,
            direction=circular_mean([m.direction for m in members]),
            magnitude=float(np.mean([m.magnitude for m in members])),
            depth=float(np.mean([m.depth for m in members])),
            time=newest.time,
            timestamp=newest.timestamp,
            count=sum(m.count for m in members),
        ))
    return reduced


def _select_vectors(rows: Sequence[Mapping], opts: VectorOptions) -> List[VectorSample]:
    samples = []
    for row in rows:
        magnitude = to_float(row.get(opts.magnitude_key))
        direction = to_float(row.get(opts.direction_key))
        if magnitude is None or direction is None:
            continue
        coords = row_coordinates(row)
        if coords is None:
            continue
        if opts.depth_filter is not None and not within_depth(row, opts.depth_filter, DEPTH_TOLERANCE):
            continue
        samples.append(_sample_from_row(row, coords[0], coords[1], magnitude, direction))

    logger.debug(
        f"Vectors {opts.magnitude_key}/{opts.direction_key}: "
        f"{len(samples)}/{len(rows)} rows qualify"
    )

    samples.sort(key=lambda s: s.timestamp)

    if opts.grid_resolution > 0:
        samples = _aggregate_cells(samples, opts.grid_resolution)

    if opts.latest_only:
        samples = latest_per_position(samples, lambda s: (s.lat, s.lon), lambda s: s.timestamp)

    return keep_most_recent(samples, opts.max_points)


@timed("process_vector")
def process_vector(rows: Sequence[Mapping], **options) -> List[dict]:
    """
    Extract magnitude/direction vectors, optionally binned to a grid.

    Pipeline: qualify (both fields finite, valid position), depth filter,
    sort by time, grid aggregation (circular-mean direction, arithmetic-mean
    magnitude and depth, most recent time), latest per 4-decimal position,
    most recent ``max_points``.

    Args:
        rows: Raw measurement rows
        **options: VectorOptions fields (magnitude_key, direction_key,
            depth_filter, grid_resolution, latest_only, max_points)

    Returns:
        [{id, lat, lon, direction, magnitude, speed, time, depth,
          coordinates, vector_x, vector_y, data_point_count}, ...]
    """
    ensure_rows(rows)
    opts = parse_options(VectorOptions, **options)
    return [s.to_record(i) for i, s in enumerate(_select_vectors(rows, opts))]


def _value_range(values: List[float]) -> tuple:
    if not values:
        return 0.0, 0.0
    return min(values), max(values)


def _color_value(value: float, low: float, high: float) -> float:
    if high > low:
        return (value - low) / (high - low)
    return 0.5


@timed("vector_geometry")
def generate_vector_geometry(rows: Sequence[Mapping], **options) -> dict:
    """
    Build line geometry for a vector layer.

    The magnitude/direction columns come from the display-parameter mapping
    unless given explicitly. Each vector becomes a two-point LineString from
    its origin along (vector_x, vector_y) * magnitude * vector_scale, and a
    color_value in [0, 1] locating its speed (or depth) within the drawn set.

    Args:
        rows: Raw measurement rows
        **options: VectorGeometryOptions fields (vector_scale, min_magnitude,
            color_by, max_vectors, depth_filter, display_parameter,
            magnitude_key, direction_key)

    Returns:
        GeoJSON-like FeatureCollection with a ``metadata`` block
    """
    ensure_rows(rows)
    opts = parse_options(VectorGeometryOptions, **options)

    mapping = resolve_vector_mapping(opts.display_parameter)
    magnitude_key = opts.magnitude_key or mapping.magnitude_key
    direction_key = opts.direction_key or mapping.direction_key

    vector_opts = parse_options(
        VectorOptions,
        magnitude_key=magnitude_key,
        direction_key=direction_key,
        depth_filter=opts.depth_filter,
        grid_resolution=settings.default_grid_resolution,
        latest_only=True,
        max_points=opts.max_vectors,
    )
    samples = [s for s in _select_vectors(rows, vector_opts) if s.magnitude >= opts.min_magnitude]

    min_speed, max_speed = _value_range([s.magnitude for s in samples])
    min_depth, max_depth = _value_range([s.depth for s in samples])

    features = []
    for index, sample in enumerate(samples):
        record = sample.to_record(index)
        length = sample.magnitude * opts.vector_scale
        end_lon = sample.lon + record["vector_x"] * length
        end_lat = sample.lat + record["vector_y"] * length

        if opts.color_by == "speed":
            color_value = _color_value(sample.magnitude, min_speed, max_speed)
        else:
            color_value = _color_value(sample.depth, min_depth, max_depth)

        features.append({
            "type": "Feature",
            "properties": {
                "id": record["id"],
                "direction": sample.direction,
                "speed": sample.magnitude,
                "magnitude": sample.magnitude,
                "depth": sample.depth,
                "time": sample.time,
                "color_value": color_value,
                "data_point_count": sample.count,
            },
            "geometry": {
                "type": "LineString",
                "coordinates": [
                    [sample.lon, sample.lat],
                    [end_lon, end_lat],
                ],
            },
        })

    scale_values = [s.magnitude if opts.color_by == "speed" else s.depth for s in samples]
    logger.debug(f"Vector geometry {opts.display_parameter!r}: {len(features)} features")

    return {
        "type": "FeatureCollection",
        "features": features,
        "metadata": {
            "vector_count": len(features),
            "speed_range": {"min": min_speed, "max": max_speed},
            "depth_range": {"min": min_depth, "max": max_depth},
            "color_by": opts.color_by,
            "display_parameter": opts.display_parameter,
            "field_mapping": {
                "magnitude_key": magnitude_key,
                "direction_key": direction_key,
            },
            "color_scale": color_scale(scale_values, opts.color_by).to_dict(),
        },
    }

"""
Scalar field processing: per-point extraction and heatmap grids.

Any numeric column (temperature, salinity, pressure, sea-surface height,
sound speed, ...) can be extracted. A row only needs a valid position and the
requested attribute; every other column may be missing.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from oceanlayers.fields.colorscale import ColorScale, color_scale
from oceanlayers.fields.grid import GridBinner
from oceanlayers.fields.reduce import keep_most_recent, latest_per_position
from oceanlayers.fields.registry import (
    ATTRIBUTE_TO_LAYER,
    get_scalar_layer,
    series_kind_for,
    validate_layer_name,
)
from oceanlayers.metrics import timed
from oceanlayers.records import (
    DEPTH,
    TEMPERATURE,
    TIME,
    ensure_rows,
    row_coordinates,
    time_sort_key,
    to_float,
    within_depth,
)
from oceanlayers.schemas import HeatmapOptions, ScalarOptions, parse_options

logger = logging.getLogger(__name__)

# Depth filter tolerance, in the same units as the depth column
DEPTH_TOLERANCE = 5.0


@dataclass
class ScalarPoint:
    """One surviving row reduced to the fields a scalar layer needs."""
    lat: float
    lon: float
    value: float
    row: Mapping

    def to_dict(self) -> dict:
        depth = to_float(self.row.get(DEPTH))
        return {
            "lat": self.lat,
            "lon": self.lon,
            "value": self.value,
            "time": self.row.get(TIME),
            "depth": depth if depth is not None else 0.0,
        }


def _select_points(
    rows: Sequence[Mapping],
    attribute_key: str,
    depth_filter: Optional[float],
    latest_only: bool = False,
    max_points: Optional[int] = None,
) -> List[ScalarPoint]:
    points = []
    for row in rows:
        coords = row_coordinates(row)
        if coords is None:
            continue
        value = to_float(row.get(attribute_key))
        if value is None:
            continue
        points.append(ScalarPoint(lat=coords[0], lon=coords[1], value=value, row=row))
    logger.debug(f"{attribute_key}: {len(points)}/{len(rows)} rows carry a usable value")

    if depth_filter is not None:
        points = [p for p in points if within_depth(p.row, depth_filter, DEPTH_TOLERANCE)]
        logger.debug(f"{attribute_key}: {len(points)} rows within depth {depth_filter}±{DEPTH_TOLERANCE}")

    points.sort(key=lambda p: time_sort_key(p.row))

    if latest_only:
        points = latest_per_position(
            points, lambda p: (p.lat, p.lon), lambda p: time_sort_key(p.row),
        )

    return keep_most_recent(points, max_points)


@timed("process_scalar")
def process_scalar(rows: Sequence[Mapping], attribute_key: str, **options) -> List[dict]:
    """
    Extract one scalar attribute per row.

    Args:
        rows: Raw measurement rows
        attribute_key: Column to extract, e.g. "temp"
        **options: ScalarOptions fields (depth_filter, latest_only, max_points)

    Returns:
        [{lat, lon, value, time, depth}, ...] in ascending time order
        (first-seen position order when latest_only)
    """
    ensure_rows(rows)
    opts = parse_options(ScalarOptions, **options)
    points = _select_points(
        rows, attribute_key, opts.depth_filter,
        latest_only=opts.latest_only, max_points=opts.max_points,
    )
    return [p.to_dict() for p in points]


def _clamp01(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


@timed("heatmap")
def generate_heatmap(rows: Sequence[Mapping], attribute_key: str, **options) -> List[List[float]]:
    """
    Bin a scalar attribute into grid cells and map cell means to [0, 1].

    With normalize=True the intensity is the cell mean's position between the
    global min and max of the surviving rows. When every value is equal (or
    normalize=False) the intensity is the cell mean times intensity_scale,
    clamped to [0, 1].

    Args:
        rows: Raw measurement rows
        attribute_key: Column to visualize
        **options: HeatmapOptions fields (intensity_scale, normalize,
            grid_resolution, depth_filter)

    Returns:
        [[lat, lon, intensity], ...], one entry per occupied cell
    """
    ensure_rows(rows)
    opts = parse_options(HeatmapOptions, **options)
    points = _select_points(rows, attribute_key, opts.depth_filter)
    if not points:
        return []

    values = np.fromiter((p.value for p in points), dtype=float, count=len(points))
    global_min = float(values.min())
    global_max = float(values.max())
    value_range = global_max - global_min

    binner = GridBinner(opts.grid_resolution)
    for p in points:
        binner.add(p.lat, p.lon, value=p.value)

    heatmap = []
    for cell in binner:
        avg = float(np.mean(cell.values("value")))
        if opts.normalize and value_range > 0:
            intensity = (avg - global_min) / value_range
        else:
            intensity = avg * opts.intensity_scale
        heatmap.append([cell.lat, cell.lon, _clamp01(intensity)])

    logger.debug(
        f"Heatmap {attribute_key}: {len(points)} points -> {len(heatmap)} cells "
        f"at {opts.grid_resolution}°"
    )
    return heatmap


def generate_layer_heatmap(rows: Sequence[Mapping], layer_name: str, **options) -> List[List[float]]:
    """generate_heatmap() for a registered scalar layer ("temperature", "salinity", ...)."""
    layer = get_scalar_layer(validate_layer_name(layer_name))
    return generate_heatmap(rows, layer.attribute_key, **options)


def heatmap_color_scale(
    rows: Sequence[Mapping],
    layer_name: str,
    depth_filter: Optional[float] = None,
) -> ColorScale:
    """Color scale over the values a layer's heatmap would use."""
    ensure_rows(rows)
    layer = get_scalar_layer(validate_layer_name(layer_name))
    points = _select_points(rows, layer.attribute_key, depth_filter)
    return color_scale([p.value for p in points], layer.series_kind)


@timed("latest_readings")
def latest_readings(
    rows: Sequence[Mapping],
    attribute_key: str = TEMPERATURE,
    max_points: int = 1000,
) -> List[dict]:
    """
    Most recent reading per position, ready for marker display.

    Each record carries an id, GeoJSON-order coordinates and a display
    string using the unit of the matching registered layer.
    """
    ensure_rows(rows)
    opts = parse_options(ScalarOptions, latest_only=True, max_points=max_points)
    points = _select_points(
        rows, attribute_key, None, latest_only=True, max_points=opts.max_points,
    )

    layer = ATTRIBUTE_TO_LAYER.get(attribute_key)
    unit = layer.unit if layer is not None else ""
    decimals = layer.display_decimals if layer is not None else 1

    readings = []
    for p in points:
        record = p.to_dict()
        record.update({
            "id": f"{attribute_key}_{p.lat}_{p.lon}",
            "coordinates": [p.lon, p.lat],
            "display_value": f"{p.value:.{decimals}f}{unit}",
            "series_kind": series_kind_for(attribute_key),
        })
        readings.append(record)
    return readings

"""
Station clustering.

Groups raw point samples into "stations" believed to share one physical
sensor location. Rows are bucketed by coordinates rounded to a precision that
coarsens as the row count grows, which bounds the number of stations a large
query can produce. Each station is placed at the true centroid of the rows
around its first member, not at the rounded bucket anchor.
"""

import logging
import math
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from oceanlayers.config import settings
from oceanlayers.data.water_mask import estimate_water_depth, is_likely_on_water
from oceanlayers.errors import InvalidInputError
from oceanlayers.metrics import timed
from oceanlayers.records import (
    AREA,
    MODEL,
    SOURCE_FILE,
    STATUS,
    coordinate_key,
    ensure_rows,
    row_coordinates,
)

logger = logging.getLogger(__name__)

# Rows tagged with these deployment states were not measuring in place
EXCLUDED_STATUSES = frozenset({"pre-deployment", "post-recovery"})

# (minimum exclusive point count, RGB)
DENSITY_COLORS: Tuple[Tuple[int, Tuple[int, int, int]], ...] = (
    (1000, (255, 69, 0)),
    (500, (255, 140, 0)),
    (100, (255, 215, 0)),
    (10, (0, 191, 255)),
)
SPARSE_COLOR = (0, 255, 127)
EMPTY_COLOR = (128, 128, 128)

GOOD_QUALITY_MIN_POINTS = 10


@dataclass(frozen=True)
class StationValidation:
    """Quality flags attached by validate_stations()."""
    is_on_water: bool
    has_data: bool
    is_active: bool
    data_quality: str   # "good" | "limited"


@dataclass
class Station:
    """A clustered sensor location and the rows assigned to it."""
    name: str
    lat: float
    lon: float
    color: Tuple[int, int, int]
    data_point_count: int = 0
    source_files: List[str] = field(default_factory=list)
    members: List[dict] = field(default_factory=list)
    deployment_status: str = "active"
    water_depth: float = 0.0
    model: Optional[str] = None
    area: Optional[str] = None
    station_type: str = "ocean_station"
    validation: Optional[StationValidation] = None

    @property
    def coordinates(self) -> List[float]:
        """GeoJSON order: [lon, lat]."""
        return [self.lon, self.lat]

    def to_dict(self, include_members: bool = True) -> dict:
        data = {
            "name": self.name,
            "lat": self.lat,
            "lon": self.lon,
            "coordinates": self.coordinates,
            "color": list(self.color),
            "data_point_count": self.data_point_count,
            "source_files": list(self.source_files),
            "deployment_status": self.deployment_status,
            "water_depth": self.water_depth,
            "model": self.model,
            "area": self.area,
            "type": self.station_type,
        }
        if include_members:
            data["members"] = list(self.members)
        if self.validation is not None:
            data["validation"] = {
                "is_on_water": self.validation.is_on_water,
                "has_data": self.validation.has_data,
                "is_active": self.validation.is_active,
                "data_quality": self.validation.data_quality,
            }
        return data


def optimal_precision(row_count: int) -> int:
    """Decimal places used for bucketing ``row_count`` rows."""
    if row_count > 50000:
        return 1
    if row_count > 10000:
        return 2
    if row_count > 1000:
        return 3
    return 4


def station_color(point_count: int) -> Tuple[int, int, int]:
    """Display color from the number of points at a station."""
    if point_count == 0:
        return EMPTY_COLOR
    for threshold, color in DENSITY_COLORS:
        if point_count > threshold:
            return color
    return SPARSE_COLOR


class _NeighborIndex:
    """
    Spatial hash answering "which rows lie within ``width`` of a point".

    Buckets are ``width`` wide, so any row closer than ``width`` on both axes
    sits in the same or an adjacent bucket. The answer equals a full scan of
    every row without its quadratic cost.
    """

    def __init__(self, points: List[Tuple[float, float]], width: float):
        self.width = width
        self._buckets: Dict[Tuple[int, int], List[Tuple[float, float]]] = defaultdict(list)
        for lat, lon in points:
            self._buckets[self._bucket(lat, lon)].append((lat, lon))

    def _bucket(self, lat: float, lon: float) -> Tuple[int, int]:
        return math.floor(lat / self.width), math.floor(lon / self.width)

    def neighbors(self, lat: float, lon: float) -> List[Tuple[float, float]]:
        row, col = self._bucket(lat, lon)
        found = []
        for d_row in (-1, 0, 1):
            for d_col in (-1, 0, 1):
                for p_lat, p_lon in self._buckets.get((row + d_row, col + d_col), ()):
                    if abs(p_lat - lat) < self.width and abs(p_lon - lon) < self.width:
                        found.append((p_lat, p_lon))
        return found


def _is_deployed(row: Mapping) -> bool:
    return row.get(STATUS) not in EXCLUDED_STATUSES


@timed("cluster_stations")
def cluster_stations(rows: Sequence[Mapping]) -> List[Station]:
    """
    Cluster rows into stations with adaptive rounding precision.

    Rows need a valid position inside the water mask and a deployment status
    other than pre-deployment / post-recovery. Output order is not part of
    the contract.

    Args:
        rows: Raw measurement rows

    Returns:
        List of Station, each with a local centroid, density color, estimated
        depth and copies of its member rows (tagged with ``row_index``)
    """
    ensure_rows(rows)

    water: List[Tuple[int, float, float, Mapping]] = []
    for row_index, row in enumerate(rows):
        coords = row_coordinates(row)
        if coords is None or not is_likely_on_water(*coords) or not _is_deployed(row):
            continue
        water.append((row_index, coords[0], coords[1], row))

    if not water:
        logger.debug(f"No station candidates among {len(rows)} rows")
        return []

    precision = optimal_precision(len(water))
    index = _NeighborIndex([(lat, lon) for _, lat, lon, _ in water], 10 ** -precision)

    stations: Dict[str, Station] = {}
    source_sets: Dict[str, Dict[str, None]] = {}
    for row_index, lat, lon, row in water:
        key = coordinate_key(lat, lon, precision)
        station = stations.get(key)
        if station is None:
            group = index.neighbors(lat, lon)
            centroid_lat = sum(p[0] for p in group) / len(group)
            centroid_lon = sum(p[1] for p in group) / len(group)
            station = Station(
                name=f"Ocean Station {len(stations) + 1}",
                lat=centroid_lat,
                lon=centroid_lon,
                color=EMPTY_COLOR,
                water_depth=estimate_water_depth(centroid_lat, centroid_lon),
                model=row.get(MODEL) or settings.default_model,
                area=row.get(AREA),
            )
            stations[key] = station
            source_sets[key] = {}

        station.data_point_count += 1
        source_file = row.get(SOURCE_FILE)
        if source_file is not None:
            source_sets[key][source_file] = None
        station.members.append({**row, "row_index": row_index})

    for key, station in stations.items():
        station.color = station_color(station.data_point_count)
        station.source_files = list(source_sets[key])

    logger.info(
        f"Clustered {len(water)}/{len(rows)} rows into {len(stations)} stations "
        f"at {precision} decimal places"
    )
    return list(stations.values())


def _stations_from_groups(
    groups: Dict[Any, List[Tuple[int, Mapping]]],
    name_for: Callable[[int, float, float], str],
) -> List[Station]:
    """One api_station per group, anchored at its first member's position."""
    stations = []
    for members in groups.values():
        first = members[0][1]
        lat, lon = row_coordinates(first)
        source_files = {
            row.get(SOURCE_FILE): None for _, row in members if row.get(SOURCE_FILE) is not None
        }
        stations.append(Station(
            name=name_for(len(stations) + 1, lat, lon),
            lat=lat,
            lon=lon,
            color=station_color(len(members)),
            data_point_count=len(members),
            source_files=list(source_files),
            members=[{**row, "row_index": i} for i, row in members],
            water_depth=estimate_water_depth(lat, lon),
            model=first.get(MODEL) or settings.default_model,
            area=first.get(AREA),
            station_type="api_station",
        ))
    return stations


@timed("stations_without_grouping")
def stations_without_grouping(rows: Sequence[Mapping]) -> List[Station]:
    """
    One station per exact (lat, lon), without rounding or water filtering.

    Rows with missing or out-of-range coordinates are skipped. Stations are
    returned in first-seen order.
    """
    ensure_rows(rows)

    groups: Dict[Tuple[float, float], List[Tuple[int, Mapping]]] = {}
    for row_index, row in enumerate(rows):
        coords = row_coordinates(row)
        if coords is None:
            continue
        groups.setdefault(coords, []).append((row_index, row))

    stations = _stations_from_groups(
        groups, lambda n, lat, lon: f"Station {n} ({lat:.4f}, {lon:.4f})"
    )
    logger.debug(f"{len(stations)} ungrouped stations from {len(rows)} rows")
    return stations


@timed("stations_at_fixed_precision")
def stations_at_fixed_precision(rows: Sequence[Mapping], precision: int = 4) -> List[Station]:
    """
    Group rows by coordinates rounded to ``precision`` decimals.

    No water or deployment filter is applied and no centroid is computed:
    each station sits at the exact position of its first row.
    """
    ensure_rows(rows)
    if precision < 0:
        raise InvalidInputError("precision", f"must be >= 0, got {precision}")

    groups: Dict[str, List[Tuple[int, Mapping]]] = {}
    for row_index, row in enumerate(rows):
        coords = row_coordinates(row)
        if coords is None:
            continue
        groups.setdefault(coordinate_key(*coords, precision), []).append((row_index, row))

    stations = _stations_from_groups(
        groups, lambda n, lat, lon: f"Station at {lat:.4f}, {lon:.4f}"
    )
    logger.debug(f"{len(stations)} stations at {precision} decimals from {len(rows)} rows")
    return stations


def validate_stations(stations: Sequence[Station]) -> List[Station]:
    """Copies of ``stations`` with water/data/activity/quality flags attached."""
    validated = []
    for station in stations:
        validation = StationValidation(
            is_on_water=is_likely_on_water(station.lat, station.lon),
            has_data=station.data_point_count > 0,
            is_active=station.deployment_status == "active",
            data_quality="good" if station.data_point_count > GOOD_QUALITY_MIN_POINTS else "limited",
        )
        validated.append(replace(station, validation=validation))
    return validated

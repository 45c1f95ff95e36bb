"""
Grid binning shared by the scalar and vector field processors.

A cell is identified by (round(lat / res), round(lon / res)) with halves
rounded away from zero, and is centred on that index times the resolution.
Cells keep raw per-attribute sample lists until a processor reduces them.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Tuple

logger = logging.getLogger(__name__)

# Cell centres are rounded to this many decimals to hide float noise
# (e.g. 3001 * 0.01 -> 30.01 rather than 30.010000000000002).
CENTER_DECIMALS = 10


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def cell_index(lat: float, lon: float, resolution: float) -> Tuple[int, int]:
    return round_half_away(lat / resolution), round_half_away(lon / resolution)


def cell_center(row: int, col: int, resolution: float) -> Tuple[float, float]:
    return round(row * resolution, CENTER_DECIMALS), round(col * resolution, CENTER_DECIMALS)


@dataclass
class GridCell:
    """A grid cell and the samples that fell into it."""
    lat: float
    lon: float
    row: int
    col: int
    samples: Dict[str, List] = field(default_factory=lambda: defaultdict(list))
    count: int = 0

    def add(self, **values):
        self.count += 1
        for name, value in values.items():
            self.samples[name].append(value)

    def values(self, name: str) -> List:
        return self.samples.get(name, [])


class GridBinner:
    """Accumulates points into cells of a fixed resolution (degrees)."""

    def __init__(self, resolution: float):
        if not resolution > 0:
            raise ValueError(f"Grid resolution must be positive, got {resolution}")
        self.resolution = resolution
        self._cells: Dict[Tuple[int, int], GridCell] = {}

    def add(self, lat: float, lon: float, **values) -> GridCell:
        """Add one point; returns the cell it landed in."""
        row, col = cell_index(lat, lon, self.resolution)
        cell = self._cells.get((row, col))
        if cell is None:
            cell_lat, cell_lon = cell_center(row, col, self.resolution)
            cell = GridCell(lat=cell_lat, lon=cell_lon, row=row, col=col)
            self._cells[(row, col)] = cell
        cell.add(**values)
        return cell

    def cells(self) -> List[GridCell]:
        """Cells in first-seen order."""
        return list(self._cells.values())

    def __iter__(self) -> Iterator[GridCell]:
        return iter(self._cells.values())

    def __len__(self) -> int:
        return len(self._cells)


def count_cells(coordinates: List[Tuple[float, float]], resolution: float) -> int:
    """Number of distinct cells a set of (lat, lon) points occupies."""
    return len({cell_index(lat, lon, resolution) for lat, lon in coordinates})

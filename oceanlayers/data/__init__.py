"""Row-level quality checks, geographic heuristics and time-ordered views."""

from .coordinates import (
    CoordinateReport,
    field_presence,
    validate_coordinates,
)
from .timeseries import (
    EnvironmentalSnapshot,
    environmental_snapshot,
    group_by_time,
    process_time_series,
)
from .water_mask import (
    estimate_water_depth,
    is_likely_on_water,
)

__all__ = [
    'CoordinateReport',
    'field_presence',
    'validate_coordinates',
    'EnvironmentalSnapshot',
    'environmental_snapshot',
    'group_by_time',
    'process_time_series',
    'estimate_water_depth',
    'is_likely_on_water',
]

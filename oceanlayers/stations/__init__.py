"""Station clustering."""

from .clustering import (
    Station,
    StationValidation,
    cluster_stations,
    stations_at_fixed_precision,
    stations_without_grouping,
    validate_stations,
)

__all__ = [
    'Station',
    'StationValidation',
    'cluster_stations',
    'stations_at_fixed_precision',
    'stations_without_grouping',
    'validate_stations',
]

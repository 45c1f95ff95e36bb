"""
Ocean layers: derived map-layer data from geolocated ocean-sensor rows.

Heatmap grids, current/wind vector geometry, clustered stations, color scales
and coordinate-quality reports. Every processor takes the rows as an explicit
argument and returns fresh plain structures.
"""

__version__ = "0.1.0"

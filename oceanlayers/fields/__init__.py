"""Scalar and vector field processors for map layers."""

from .colorscale import ColorScale, ColorStop, color_scale
from .scalar import (
    generate_heatmap,
    generate_layer_heatmap,
    heatmap_color_scale,
    latest_readings,
    process_scalar,
)
from .vector import (
    circular_mean,
    generate_vector_geometry,
    process_vector,
)

__all__ = [
    'ColorScale',
    'ColorStop',
    'color_scale',
    'generate_heatmap',
    'generate_layer_heatmap',
    'heatmap_color_scale',
    'latest_readings',
    'process_scalar',
    'circular_mean',
    'generate_vector_geometry',
    'process_vector',
]

"""
Layer registry: the single source of truth for map layers.

Scalar layers map a layer name to the raw column holding the attribute, its
unit and the color-scale family used to render it. Vector mappings map the
display parameter chosen in the UI to the magnitude/direction column pair.
Processors derive their field keys from here instead of hard-coding them.
"""

from dataclasses import dataclass
from typing import Dict

from oceanlayers.records import (
    DIRECTION,
    PRESSURE,
    SALINITY,
    SEA_SURFACE_HEIGHT,
    SOUND_SPEED,
    SPEED,
    TEMPERATURE,
    WIND_DIRECTION,
)


@dataclass(frozen=True)
class ScalarLayer:
    """Immutable configuration for one scalar heatmap layer."""

    name: str                       # e.g. "temperature", "salinity"
    attribute_key: str              # raw column, e.g. "temp"
    unit: str
    series_kind: str = "speed"      # color-scale family: "speed" | "depth" | "temperature"
    display_decimals: int = 1


@dataclass(frozen=True)
class VectorMapping:
    """Column pair feeding a vector layer."""

    magnitude_key: str
    direction_key: str

    def to_dict(self) -> dict:
        return {"magnitude_key": self.magnitude_key, "direction_key": self.direction_key}


# ---------------------------------------------------------------------------
# Scalar layers
# ---------------------------------------------------------------------------

SCALAR_LAYERS: Dict[str, ScalarLayer] = {
    "temperature": ScalarLayer(
        name="temperature",
        attribute_key=TEMPERATURE,
        unit="°C",
        series_kind="temperature",
    ),
    "salinity": ScalarLayer(
        name="salinity",
        attribute_key=SALINITY,
        unit="PSU",
        display_decimals=2,
    ),
    "pressure": ScalarLayer(
        name="pressure",
        attribute_key=PRESSURE,
        unit="dbar",
        series_kind="depth",
    ),
    "ssh": ScalarLayer(
        name="ssh",
        attribute_key=SEA_SURFACE_HEIGHT,
        unit="m",
        display_decimals=2,
    ),
    "sound_speed": ScalarLayer(
        name="sound_speed",
        attribute_key=SOUND_SPEED,
        unit="m/s",
    ),
}

LAYER_NAMES = tuple(SCALAR_LAYERS.keys())

# Reverse lookup: raw column -> layer
ATTRIBUTE_TO_LAYER = {layer.attribute_key: layer for layer in SCALAR_LAYERS.values()}

# ---------------------------------------------------------------------------
# Vector mappings
# ---------------------------------------------------------------------------

_CURRENTS = VectorMapping(magnitude_key=SPEED, direction_key=DIRECTION)
_WIND = VectorMapping(magnitude_key=SPEED, direction_key=WIND_DIRECTION)

DEFAULT_DISPLAY_PARAMETER = "Ocean Currents"

VECTOR_MAPPINGS: Dict[str, VectorMapping] = {
    "Current Speed": _CURRENTS,
    "Current Direction": _CURRENTS,
    "Wind Speed": _WIND,
    "Wind Direction": _WIND,
    "Wave Direction": _CURRENTS,
    DEFAULT_DISPLAY_PARAMETER: _CURRENTS,
}


def get_scalar_layer(name: str) -> ScalarLayer:
    """Look up a scalar layer by name. Raises KeyError if not found."""
    return SCALAR_LAYERS[name]


def validate_layer_name(name: str) -> str:
    """Validate and return a scalar layer name. Raises ValueError with available names."""
    if name not in SCALAR_LAYERS:
        raise ValueError(
            f"Unknown scalar layer: {name!r}. "
            f"Valid layers: {', '.join(LAYER_NAMES)}"
        )
    return name


def resolve_vector_mapping(display_parameter: str) -> VectorMapping:
    """Column pair for a display parameter; unknown names get the ocean-currents pair."""
    return VECTOR_MAPPINGS.get(display_parameter, VECTOR_MAPPINGS[DEFAULT_DISPLAY_PARAMETER])


def series_kind_for(attribute_key: str) -> str:
    """Color-scale family for a raw column (``"speed"`` when unregistered)."""
    layer = ATTRIBUTE_TO_LAYER.get(attribute_key)
    return layer.series_kind if layer is not None else "speed"

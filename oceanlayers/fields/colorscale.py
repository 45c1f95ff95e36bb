"""
Color scales for numeric series.

Three families are supported. Speed-like series run blue → green → red,
depth-like series yellow → cyan → blue, and temperature uses five stops at
min / quarter / mid / three-quarter / max from blue through red. An empty
series gets a fixed default range with the same stop shape.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

import numpy as np

from oceanlayers.records import to_float

logger = logging.getLogger(__name__)

# family -> ((fraction, hex color), ...)
GRADIENTS: Dict[str, Tuple[Tuple[float, str], ...]] = {
    "speed": ((0.0, "#0000FF"), (0.5, "#00FF00"), (1.0, "#FF0000")),
    "depth": ((0.0, "#FFFF00"), (0.5, "#00FFFF"), (1.0, "#0000FF")),
    "temperature": (
        (0.0, "#0000FF"),
        (0.25, "#00FFFF"),
        (0.5, "#00FF00"),
        (0.75, "#FFFF00"),
        (1.0, "#FF0000"),
    ),
}

# Range used when a series has no usable values
DEFAULT_RANGES: Dict[str, Tuple[float, float]] = {
    "speed": (0.0, 10.0),
    "depth": (0.0, 10.0),
    "temperature": (0.0, 30.0),
}

_ALIASES = {
    "temp": "temperature",
    "current": "speed",
    "wind": "speed",
    "magnitude": "speed",
}


@dataclass(frozen=True)
class ColorStop:
    value: float
    color: str

    @property
    def rgb(self) -> str:
        r, g, b = (int(self.color[i:i + 2], 16) for i in (1, 3, 5))
        return f"rgb({r}, {g}, {b})"


@dataclass
class ColorScale:
    """min/mid/max of a series plus ordered gradient stops."""
    min: float
    max: float
    mid: float
    series_kind: str
    stops: List[ColorStop] = field(default_factory=list)

    @property
    def gradient(self) -> List[str]:
        return [stop.rgb for stop in self.stops]

    def to_dict(self) -> dict:
        return {
            "min": self.min,
            "max": self.max,
            "mid": self.mid,
            "property": self.series_kind,
            "stops": [{"value": s.value, "color": s.color} for s in self.stops],
            "gradient": self.gradient,
        }


def normalize_series_kind(series_kind: str) -> str:
    kind = _ALIASES.get(series_kind, series_kind)
    if kind not in GRADIENTS:
        logger.debug(f"Unknown color-scale series {series_kind!r}, using speed gradient")
        return "speed"
    return kind


def color_scale(values: Iterable[Any], series_kind: str = "speed") -> ColorScale:
    """
    Build a color scale for ``values``.

    Non-numeric, missing and non-finite entries are ignored. Never raises for
    an empty series.

    Args:
        values: Numeric series (numbers or numeric strings)
        series_kind: "speed", "depth" or "temperature" (unknown kinds use speed)

    Returns:
        ColorScale whose stops sit at evenly spaced fractions of [min, max]
    """
    kind = normalize_series_kind(series_kind)
    numbers = [v for v in (to_float(value) for value in values) if v is not None]

    if numbers:
        arr = np.asarray(numbers, dtype=float)
        low, high = float(arr.min()), float(arr.max())
    else:
        low, high = DEFAULT_RANGES[kind]

    stops = [
        ColorStop(value=_interpolate(low, high, fraction), color=color)
        for fraction, color in GRADIENTS[kind]
    ]
    return ColorScale(min=low, max=high, mid=(low + high) / 2, series_kind=kind, stops=stops)


def _interpolate(low: float, high: float, fraction: float) -> float:
    # Endpoints are returned exactly so stops[0] == min and stops[-1] == max
    if fraction <= 0.0:
        return low
    if fraction >= 1.0:
        return high
    return low + (high - low) * fraction

"""Processing option schemas."""

from typing import Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oceanlayers.config import settings
from oceanlayers.errors import InvalidInputError

OptionsT = TypeVar("OptionsT", bound=BaseModel)


class _Options(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False, extra="forbid", frozen=True)


class ScalarOptions(_Options):
    """Filters for extracting one scalar attribute."""
    depth_filter: Optional[float] = None
    latest_only: bool = False
    max_points: Optional[int] = Field(None, ge=0)


class HeatmapOptions(_Options):
    """Grid binning and intensity mapping for a heatmap layer."""
    intensity_scale: float = 1.0
    normalize: bool = True
    grid_resolution: float = Field(
        default_factory=lambda: settings.default_grid_resolution, gt=0,
        description="Cell size in degrees",
    )
    depth_filter: Optional[float] = None


class VectorOptions(_Options):
    """Field keys and binning for a magnitude/direction pair."""
    magnitude_key: str = Field("nspeed", min_length=1)
    direction_key: str = Field("direction", min_length=1)
    depth_filter: Optional[float] = None
    grid_resolution: float = Field(
        default_factory=lambda: settings.default_grid_resolution, ge=0,
        description="Cell size in degrees; 0 disables binning",
    )
    latest_only: bool = False
    max_points: Optional[int] = Field(None, ge=0)


class VectorGeometryOptions(_Options):
    """Line-geometry rendering options for a vector layer."""
    vector_scale: float = Field(default_factory=lambda: settings.default_vector_scale)
    min_magnitude: float = 0.0
    color_by: Literal["speed", "depth"] = "speed"
    max_vectors: Optional[int] = Field(
        default_factory=lambda: settings.default_max_vectors, ge=0,
    )
    depth_filter: Optional[float] = None
    display_parameter: str = "Current Speed"
    # Explicit keys win over the display-parameter mapping
    magnitude_key: Optional[str] = None
    direction_key: Optional[str] = None


def parse_options(model: Type[OptionsT], **values) -> OptionsT:
    """Build an options model, reporting the first bad field as InvalidInputError."""
    try:
        return model(**values)
    except ValidationError as e:
        first = e.errors()[0]
        argument = ".".join(str(part) for part in first.get("loc", ())) or model.__name__
        raise InvalidInputError(argument, first.get("msg", str(e))) from e

"""
Unit tests for the vector field processor.

Tests the circular mean, vector extraction and grid aggregation, and the
line geometry built for the map.
"""

import math

import numpy as np
import pytest

from oceanlayers.errors import InvalidInputError
from oceanlayers.fields.vector import (
    circular_mean,
    direction_components,
    generate_vector_geometry,
    process_vector,
)
from tests.helpers import make_row

T0 = "2025-07-31T00:00:00Z"
T1 = "2025-07-31T01:00:00Z"
T2 = "2025-07-31T02:00:00Z"


def _angular_distance(a, b):
    d = abs(a - b) % 360.0
    return min(d, 360.0 - d)


class TestCircularMean:
    """Tests for circular_mean()."""

    def test_wraps_around_north(self):
        result = circular_mean([10.0, 350.0])
        assert _angular_distance(result, 0.0) < 1e-9
        assert 0.0 <= result < 360.0

    @pytest.mark.parametrize("angles,expected", [
        ([0.0, 90.0], 45.0),
        ([90.0, 180.0], 135.0),
        ([270.0], 270.0),
        ([-90.0], 270.0),
        ([720.0], 0.0),
        ([45.0, 45.0, 45.0], 45.0),
    ])
    def test_known_means(self, angles, expected):
        assert circular_mean(angles) == pytest.approx(expected, abs=1e-9)

    @pytest.mark.parametrize("angles", [
        [0.0, 180.0],
        [90.0, 270.0],
        [0.0, 120.0, 240.0],
    ])
    def test_zero_resultant_is_zero(self, angles):
        assert circular_mean(angles) == 0.0

    def test_empty(self):
        assert circular_mean([]) == 0.0

    def test_range(self):
        rng = np.random.default_rng(3)
        for _ in range(200):
            angles = rng.uniform(-720.0, 720.0, size=rng.integers(1, 6)).tolist()
            assert 0.0 <= circular_mean(angles) < 360.0


class TestDirectionComponents:
    """Tests for direction_components()."""

    @pytest.mark.parametrize("direction,x,y", [
        (0.0, 0.0, 1.0),
        (90.0, 1.0, 0.0),
        (180.0, 0.0, -1.0),
        (270.0, -1.0, 0.0),
    ])
    def test_compass(self, direction, x, y):
        vx, vy = direction_components(direction)
        assert vx == pytest.approx(x, abs=1e-12)
        assert vy == pytest.approx(y, abs=1e-12)


class TestProcessVector:
    """Tests for process_vector()."""

    def test_opposed_directions_in_one_cell(self):
        rows = [
            make_row(30.0, -89.0, T0, nspeed=2.0, direction=0),
            make_row(30.0, -89.0, T1, nspeed=4.0, direction=180),
        ]
        vectors = process_vector(rows, grid_resolution=0.01)

        assert len(vectors) == 1
        v = vectors[0]
        assert v["magnitude"] == pytest.approx(3.0)
        assert v["direction"] == 0.0
        assert v["time"] == T1
        assert v["data_point_count"] == 2
        assert (v["lat"], v["lon"]) == (30.0, -89.0)

    def test_cell_direction_wraps(self):
        rows = [
            make_row(30.001, -88.001, T0, nspeed=1.0, direction=350.0),
            make_row(30.002, -88.002, T1, nspeed=1.0, direction=10.0),
        ]
        v = process_vector(rows, grid_resolution=0.01)[0]
        assert _angular_distance(v["direction"], 0.0) < 1e-9

    def test_cell_means_depth(self):
        rows = [
            make_row(30.0, -88.0, T0, nspeed=1.0, direction=0.0, depth=2.0),
            make_row(30.0, -88.0, T1, nspeed=1.0, direction=0.0, depth=4.0),
        ]
        assert process_vector(rows)[0]["depth"] == pytest.approx(3.0)

    def test_record_fields(self):
        v = process_vector([make_row(30.0, -88.0, nspeed=1.5, direction=90.0)])[0]

        assert v["id"] == "vector_0"
        assert v["speed"] == v["magnitude"] == 1.5
        assert v["coordinates"] == [-88.0, 30.0]
        assert v["vector_x"] == pytest.approx(1.0)
        assert v["vector_y"] == pytest.approx(0.0, abs=1e-12)
        assert v["depth"] == 0.0

    def test_requires_both_fields(self):
        rows = [
            make_row(30.0, -88.0, nspeed=1.0),
            make_row(30.1, -88.0, direction=10.0),
            make_row(30.2, -88.0, nspeed=1.0, direction=float("nan")),
            make_row(30.3, -88.0, nspeed=None, direction=10.0),
            make_row(30.4, -88.0, nspeed="1.0", direction="10"),
        ]
        vectors = process_vector(rows)
        assert len(vectors) == 1
        assert vectors[0]["direction"] == 10.0

    def test_invalid_coordinates_dropped(self, gulf_rows):
        vectors = process_vector(gulf_rows, grid_resolution=0)
        assert len(vectors) == 4

    def test_without_grid(self):
        rows = [
            make_row(30.0, -88.0, T0, nspeed=1.0, direction=0.0),
            make_row(30.0, -88.0, T1, nspeed=2.0, direction=0.0),
        ]
        vectors = process_vector(rows, grid_resolution=0)
        assert [v["id"] for v in vectors] == ["vector_0", "vector_1"]
        assert [v["magnitude"] for v in vectors] == [1.0, 2.0]

    def test_latest_only(self):
        rows = [
            make_row(30.0, -88.0, T1, nspeed=2.0, direction=0.0),
            make_row(30.0, -88.0, T0, nspeed=1.0, direction=0.0),
            make_row(30.5, -88.0, T0, nspeed=5.0, direction=0.0),
        ]
        vectors = process_vector(rows, grid_resolution=0, latest_only=True)
        assert sorted(v["magnitude"] for v in vectors) == [2.0, 5.0]

    def test_wind_keys(self, gulf_rows):
        vectors = process_vector(
            gulf_rows, magnitude_key="nspeed", direction_key="ndirection", grid_resolution=0,
        )
        assert [v["direction"] for v in vectors] == [120.0, 125.0]

    def test_depth_filter(self, gulf_rows):
        vectors = process_vector(gulf_rows, depth_filter=0, grid_resolution=0)
        assert len(vectors) == 4

        vectors = process_vector(gulf_rows, depth_filter=20, grid_resolution=0)
        assert vectors == []

    def test_max_points(self):
        rows = [make_row(30.0 + i * 0.1, -88.0, f"2025-07-31T0{i}:00:00Z", nspeed=float(i), direction=0.0)
                for i in range(5)]
        vectors = process_vector(rows, max_points=2)
        assert [v["magnitude"] for v in vectors] == [3.0, 4.0]

    def test_empty(self):
        assert process_vector([]) == []

    @pytest.mark.parametrize("options,argument", [
        ({"magnitude_key": ""}, "magnitude_key"),
        ({"grid_resolution": -1}, "grid_resolution"),
        ({"max_points": -2}, "max_points"),
        ({"depth_filter": math.inf}, "depth_filter"),
    ])
    def test_rejects_bad_options(self, options, argument):
        with pytest.raises(InvalidInputError) as exc_info:
            process_vector([], **options)
        assert exc_info.value.argument == argument

    def test_idempotent(self, gulf_rows):
        assert process_vector(gulf_rows) == process_vector(gulf_rows)


class TestGenerateVectorGeometry:
    """Tests for generate_vector_geometry()."""

    @pytest.fixture
    def current_rows(self):
        return [
            make_row(30.0, -88.0, T0, nspeed=1.0, direction=90.0, depth=2.0),
            make_row(30.5, -88.5, T1, nspeed=3.0, direction=0.0, depth=10.0),
        ]

    def test_feature_collection(self, current_rows):
        result = generate_vector_geometry(current_rows)

        assert result["type"] == "FeatureCollection"
        assert len(result["features"]) == 2
        feature = result["features"][0]
        assert feature["type"] == "Feature"
        assert feature["geometry"]["type"] == "LineString"

    def test_line_end_points(self, current_rows):
        east, north = generate_vector_geometry(current_rows, vector_scale=0.01)["features"]

        start, end = east["geometry"]["coordinates"]
        assert start == [-88.0, 30.0]
        assert end[0] == pytest.approx(-88.0 + 1.0 * 0.01)
        assert end[1] == pytest.approx(30.0, abs=1e-12)

        start, end = north["geometry"]["coordinates"]
        assert start == [-88.5, 30.5]
        assert end[0] == pytest.approx(-88.5, abs=1e-12)
        assert end[1] == pytest.approx(30.5 + 3.0 * 0.01)

    def test_color_by_speed(self, current_rows):
        features = generate_vector_geometry(current_rows)["features"]
        assert [f["properties"]["color_value"] for f in features] == [0.0, 1.0]

    def test_color_by_depth(self, current_rows):
        features = generate_vector_geometry(current_rows, color_by="depth")["features"]
        assert [f["properties"]["color_value"] for f in features] == [0.0, 1.0]

    def test_single_vector_color_value(self):
        result = generate_vector_geometry([make_row(30.0, -88.0, nspeed=1.0, direction=0.0)])
        assert result["features"][0]["properties"]["color_value"] == 0.5

    def test_metadata(self, current_rows):
        metadata = generate_vector_geometry(current_rows)["metadata"]

        assert metadata["vector_count"] == 2
        assert metadata["speed_range"] == {"min": 1.0, "max": 3.0}
        assert metadata["depth_range"] == {"min": 2.0, "max": 10.0}
        assert metadata["color_by"] == "speed"
        assert metadata["field_mapping"] == {"magnitude_key": "nspeed", "direction_key": "direction"}
        assert metadata["color_scale"]["min"] == 1.0
        assert metadata["color_scale"]["max"] == 3.0

    def test_min_magnitude(self, current_rows):
        features = generate_vector_geometry(current_rows, min_magnitude=2.0)["features"]
        assert [f["properties"]["speed"] for f in features] == [3.0]

    def test_max_vectors_keeps_most_recent(self, current_rows):
        features = generate_vector_geometry(current_rows, max_vectors=1)["features"]
        assert [f["properties"]["speed"] for f in features] == [3.0]

    def test_wind_display_parameter(self):
        rows = [make_row(30.0, -88.0, nspeed=2.0, ndirection=45.0)]

        assert generate_vector_geometry(rows)["features"] == []

        result = generate_vector_geometry(rows, display_parameter="Wind Speed")
        assert result["metadata"]["field_mapping"]["direction_key"] == "ndirection"
        assert result["features"][0]["properties"]["direction"] == 45.0

    def test_unknown_display_parameter_uses_currents(self, current_rows):
        result = generate_vector_geometry(current_rows, display_parameter="Tide Height")
        assert result["metadata"]["field_mapping"]["direction_key"] == "direction"
        assert result["metadata"]["vector_count"] == 2

    def test_explicit_keys_override_mapping(self):
        rows = [make_row(30.0, -88.0, temp=20.0, direction=180.0)]
        result = generate_vector_geometry(rows, magnitude_key="temp", direction_key="direction")
        assert result["features"][0]["properties"]["magnitude"] == 20.0

    def test_empty(self):
        result = generate_vector_geometry([])

        assert result["features"] == []
        assert result["metadata"]["vector_count"] == 0
        assert result["metadata"]["speed_range"] == {"min": 0.0, "max": 0.0}
        assert result["metadata"]["color_scale"]["max"] == 10.0

    def test_rejects_unknown_color_by(self, current_rows):
        with pytest.raises(InvalidInputError) as exc_info:
            generate_vector_geometry(current_rows, color_by="temperature")
        assert exc_info.value.argument == "color_by"

    def test_idempotent(self, gulf_rows):
        assert generate_vector_geometry(gulf_rows) == generate_vector_geometry(gulf_rows)

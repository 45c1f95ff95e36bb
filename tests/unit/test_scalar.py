"""
Unit tests for the scalar field processor.

Tests per-point extraction filters, heatmap binning and normalization, the
registry-driven layer wrappers and latest readings.
"""

import copy

import numpy as np
import pytest

from oceanlayers.errors import InvalidInputError
from oceanlayers.fields.scalar import (
    generate_heatmap,
    generate_layer_heatmap,
    heatmap_color_scale,
    latest_readings,
    process_scalar,
)
from oceanlayers.fields.vector import process_vector
from tests.helpers import make_row


class TestProcessScalar:
    """Tests for process_scalar()."""

    def test_drops_rows_without_position_or_value(self, gulf_rows):
        points = process_scalar(gulf_rows, "temp")

        assert len(points) == 5
        assert all(set(p) == {"lat", "lon", "value", "time", "depth"} for p in points)

    def test_parses_numeric_strings(self, gulf_rows):
        points = process_scalar(gulf_rows, "temp")
        from_strings = [p for p in points if p["lat"] == 30.40]
        assert from_strings[0]["value"] == 27.8
        assert from_strings[0]["depth"] == 1.5

    def test_sorted_by_time(self, gulf_rows):
        times = [p["time"] for p in process_scalar(gulf_rows, "temp")]
        assert times == sorted(times)

    def test_missing_time_sorts_first(self):
        rows = [
            make_row(30.0, -88.0, "2025-07-31T05:00:00Z", temp=1.0),
            make_row(30.1, -88.0, None, temp=2.0),
        ]
        assert [p["value"] for p in process_scalar(rows, "temp")] == [2.0, 1.0]

    def test_missing_depth_reported_as_zero(self):
        points = process_scalar([make_row(30.0, -88.0, temp=1.0)], "temp")
        assert points[0]["depth"] == 0.0

    def test_depth_filter_tolerance_is_inclusive(self):
        rows = [make_row(30.0 + i * 0.1, -88.0, temp=float(i), depth=d)
                for i, d in enumerate([0, 5, 5.1, 10, None])]
        points = process_scalar(rows, "temp", depth_filter=0)
        assert [p["value"] for p in points] == [0.0, 1.0]

    def test_latest_only_keeps_newest_per_position(self):
        rows = [
            make_row(30.00001, -88.0, "2025-07-31T02:00:00Z", temp=2.0),
            make_row(30.00002, -88.0, "2025-07-31T01:00:00Z", temp=1.0),
            make_row(30.5, -88.0, "2025-07-31T00:00:00Z", temp=5.0),
        ]
        points = process_scalar(rows, "temp", latest_only=True)
        assert sorted(p["value"] for p in points) == [2.0, 5.0]

    def test_max_points_keeps_most_recent(self, gulf_rows):
        points = process_scalar(gulf_rows, "temp", max_points=2)
        assert [p["time"] for p in points] == ["2025-07-31T02:00:00Z", "2025-07-31T03:00:00Z"]

    def test_max_points_zero(self, gulf_rows):
        assert process_scalar(gulf_rows, "temp", max_points=0) == []

    def test_unknown_attribute_gives_empty(self, gulf_rows):
        assert process_scalar(gulf_rows, "chlorophyll") == []

    def test_empty_rows(self):
        assert process_scalar([], "temp") == []

    def test_asymmetric_filtering(self):
        """A row with temp but no direction survives scalar, not vector, processing."""
        rows = [make_row(30.0, -88.0, temp=25.0, nspeed=1.2)]

        assert len(process_scalar(rows, "temp")) == 1
        assert process_vector(rows) == []

    def test_oversized_integer_cells_are_filtered(self):
        rows = [
            make_row(10**400, -88.0, temp=20.0),
            make_row(30.0, -88.0, temp=10**400),
            make_row(30.1, -88.0, 10**400, temp=21.0),
        ]
        points = process_scalar(rows, "temp")

        assert [p["value"] for p in points] == [21.0]
        assert points[0]["time"] == 10**400

    def test_numpy_scalars_are_readings(self):
        rows = [make_row(np.float64(30.0), np.float32(-88.5), temp=np.int64(20), depth=np.int32(2))]
        points = process_scalar(rows, "temp", depth_filter=0)

        assert len(points) == 1
        assert points[0]["value"] == 20.0
        assert points[0]["depth"] == 2.0

    def test_rejects_bad_options(self):
        with pytest.raises(InvalidInputError) as exc_info:
            process_scalar([], "temp", max_points=-1)
        assert exc_info.value.argument == "max_points"

    def test_rejects_unknown_option(self):
        with pytest.raises(InvalidInputError):
            process_scalar([], "temp", depth=3)

    def test_does_not_mutate_rows(self, gulf_rows):
        before = copy.deepcopy(gulf_rows)
        process_scalar(gulf_rows, "temp", latest_only=True, max_points=3)
        assert gulf_rows == before


class TestGenerateHeatmap:
    """Tests for generate_heatmap()."""

    def test_normalized_intensities(self):
        rows = [
            make_row(30.0, -88.0, temp=10.0),
            make_row(30.5, -88.0, temp=20.0),
            make_row(31.0, -88.0, temp=30.0),
        ]
        heatmap = generate_heatmap(rows, "temp")

        assert sorted(h[2] for h in heatmap) == pytest.approx([0.0, 0.5, 1.0])

    def test_cell_mean(self):
        rows = [
            make_row(30.001, -88.001, temp=10.0),
            make_row(30.002, -88.002, temp=20.0),
            make_row(30.5, -88.0, temp=30.0),
        ]
        heatmap = generate_heatmap(rows, "temp", grid_resolution=0.01)

        assert len(heatmap) == 2
        by_lat = {lat: intensity for lat, _, intensity in heatmap}
        # cell mean 15 within [10, 30]
        assert by_lat[30.0] == pytest.approx(0.25)
        assert by_lat[30.5] == pytest.approx(1.0)

    def test_cell_coordinates_are_centres(self):
        heatmap = generate_heatmap([make_row(30.004, -88.996, temp=1.0)], "temp")
        assert heatmap[0][:2] == [30.0, -89.0]

    def test_equal_values_skip_normalization(self):
        rows = [make_row(30.0, -88.0, temp=0.4), make_row(30.5, -88.0, temp=0.4)]
        heatmap = generate_heatmap(rows, "temp", intensity_scale=2.0)
        assert [h[2] for h in heatmap] == pytest.approx([0.8, 0.8])

    def test_equal_values_are_clamped(self):
        rows = [make_row(30.0, -88.0, temp=25.0)]
        assert generate_heatmap(rows, "temp")[0][2] == 1.0

    def test_without_normalization(self):
        rows = [make_row(30.0, -88.0, temp=20.0), make_row(30.5, -88.0, temp=-5.0)]
        heatmap = generate_heatmap(rows, "temp", normalize=False, intensity_scale=0.01)
        assert sorted(h[2] for h in heatmap) == pytest.approx([0.0, 0.2])

    @pytest.mark.parametrize("values", [
        [1e308, -1e308],
        [-3.0, -2.0, -1.0],
        [0.0, 1e-12],
        [5.0],
    ])
    def test_intensity_in_unit_interval(self, values):
        rows = [make_row(28.0 + i * 0.1, -88.0, temp=v) for i, v in enumerate(values)]
        for _, _, intensity in generate_heatmap(rows, "temp"):
            assert 0.0 <= intensity <= 1.0

    def test_depth_filter(self, gulf_rows):
        heatmap = generate_heatmap(gulf_rows, "temp", depth_filter=12)
        assert len(heatmap) == 1

    def test_empty(self):
        assert generate_heatmap([], "temp") == []

    def test_rejects_zero_resolution(self):
        with pytest.raises(InvalidInputError) as exc_info:
            generate_heatmap([], "temp", grid_resolution=0)
        assert exc_info.value.argument == "grid_resolution"

    def test_idempotent(self, gulf_rows):
        assert generate_heatmap(gulf_rows, "temp") == generate_heatmap(gulf_rows, "temp")


class TestLayerWrappers:
    """Tests for the registry-driven helpers."""

    def test_layer_heatmap_uses_registered_column(self, gulf_rows):
        assert generate_layer_heatmap(gulf_rows, "salinity") == generate_heatmap(gulf_rows, "salinity")

    def test_unknown_layer(self, gulf_rows):
        with pytest.raises(ValueError, match="Valid layers"):
            generate_layer_heatmap(gulf_rows, "chlorophyll")

    def test_heatmap_color_scale(self, gulf_rows):
        scale = heatmap_color_scale(gulf_rows, "temperature")
        assert scale.series_kind == "temperature"
        assert scale.min == 26.1
        assert scale.max == 29.4
        assert len(scale.stops) == 5

    def test_heatmap_color_scale_empty_layer(self, gulf_rows):
        scale = heatmap_color_scale(gulf_rows, "ssh")
        assert (scale.min, scale.max) == (0.0, 10.0)


class TestLatestReadings:
    """Tests for latest_readings()."""

    def test_one_per_position(self, gulf_rows):
        readings = latest_readings(gulf_rows)
        at_first_site = [r for r in readings if (r["lat"], r["lon"]) == (30.10, -88.20)]

        assert len(readings) == 4
        assert len(at_first_site) == 1
        assert at_first_site[0]["value"] == 28.9

    def test_display_fields(self):
        reading = latest_readings([make_row(30.1, -88.2, temp=28.94)])[0]

        assert reading["id"] == "temp_30.1_-88.2"
        assert reading["coordinates"] == [-88.2, 30.1]
        assert reading["display_value"] == "28.9°C"
        assert reading["series_kind"] == "temperature"

    def test_unregistered_attribute(self):
        reading = latest_readings([make_row(30.1, -88.2, nspeed=0.456)], attribute_key="nspeed")[0]
        assert reading["display_value"] == "0.5"
        assert reading["series_kind"] == "speed"

    def test_max_points(self, gulf_rows):
        assert len(latest_readings(gulf_rows, max_points=1)) == 1

"""
Unit tests for geometry module.

Tests the letterbox layout of a (possibly rotated) image inside the
container and the pointer coordinate mapping.
"""

import pytest

from OA_Libs.ImageEditingLib.geometry import (
    LayoutMetrics,
    compute_layout,
    map_pointer_to_surface,
)


class TestComputeLayout:
    """Tests for compute_layout function."""

    def test_wide_image_letterboxed_vertically(self):
        """A 400x200 image in an 800x600 container fills the width."""
        layout = compute_layout(400, 200, 0, 800, 600)

        assert layout == LayoutMetrics(0.0, 100.0, 800.0, 400.0)

    def test_rotated_image_uses_swapped_dimensions(self):
        """Rotated 90 degrees the same image becomes a 300x600 column."""
        layout = compute_layout(400, 200, 90, 800, 600)

        assert layout == LayoutMetrics(250.0, 0.0, 300.0, 600.0)

    def test_180_keeps_orientation(self):
        assert compute_layout(400, 200, 180, 800, 600) == compute_layout(400, 200, 0, 800, 600)

    def test_tall_image_letterboxed_horizontally(self):
        layout = compute_layout(100, 400, 0, 800, 600)

        assert layout.display_height == 600
        assert layout.display_width == pytest.approx(150)
        assert layout.offset_x == pytest.approx(325)
        assert layout.offset_y == 0

    def test_preserves_aspect_ratio(self):
        layout = compute_layout(1920, 1080, 270, 1024, 768)

        assert layout.aspect_ratio == pytest.approx(1080 / 1920)

    @pytest.mark.parametrize("args", [
        (640, 480, 0, 300, 700),
        (640, 480, 90, 300, 700),
        (333, 777, 0, 1001, 99),
        (1, 1000, 270, 517, 389),
    ])
    def test_fits_inside_container(self, args):
        layout = compute_layout(*args)
        container_width, container_height = args[3], args[4]

        assert layout.offset_x >= 0
        assert layout.offset_y >= 0
        assert layout.offset_x + layout.display_width <= container_width
        assert layout.offset_y + layout.display_height <= container_height

    def test_is_centred(self):
        layout = compute_layout(640, 480, 0, 1000, 400)

        right_margin = 1000 - layout.offset_x - layout.display_width
        assert layout.offset_x == pytest.approx(right_margin)

    @pytest.mark.parametrize("args", [
        (0, 200, 0, 800, 600),
        (400, 0, 0, 800, 600),
        (400, 200, 0, 0, 600),
        (400, 200, 0, 800, -5),
    ])
    def test_degenerate_input_gives_zero_layout(self, args):
        layout = compute_layout(*args)

        assert layout == LayoutMetrics(0.0, 0.0, 0.0, 0.0)
        assert not layout.is_valid

    def test_padding_insets_fit_box(self):
        layout = compute_layout(400, 200, 0, 800, 600, padding=50)

        assert layout == LayoutMetrics(50.0, 125.0, 700.0, 350.0)

    def test_padding_larger_than_container(self):
        assert not compute_layout(400, 200, 0, 80, 60, padding=50).is_valid


class TestLayoutMetrics:
    """Tests for LayoutMetrics helpers."""

    def test_crop_box(self):
        layout = LayoutMetrics(0.0, 100.0, 800.0, 400.0)

        assert layout.crop_box() == (0, 100, 800, 500)

    def test_crop_box_rounds(self):
        layout = LayoutMetrics(10.4, 20.6, 99.5, 50.2)

        assert layout.crop_box() == (10, 21, 110, 71)

    def test_crop_box_never_empty(self):
        left, top, right, bottom = LayoutMetrics(3.0, 3.0, 0.2, 0.2).crop_box()

        assert right - left == 1
        assert bottom - top == 1

    def test_contains(self):
        layout = LayoutMetrics(250.0, 0.0, 300.0, 600.0)

        assert layout.contains(400, 300)
        assert layout.contains(250, 0)
        assert not layout.contains(100, 300)
        assert not layout.contains(600, 300)

    def test_default_is_invalid(self):
        layout = LayoutMetrics()

        assert not layout.is_valid
        assert layout.aspect_ratio == 0.0


class TestMapPointerToSurface:
    """Tests for map_pointer_to_surface function."""

    def test_identity_when_sizes_match(self):
        assert map_pointer_to_surface(120, 45, 800, 600, 800, 600) == (120, 45)

    def test_scales_for_high_density_backing(self):
        assert map_pointer_to_surface(50, 25, 400, 300, 800, 600) == (100, 50)

    def test_independent_axis_scaling(self):
        x, y = map_pointer_to_surface(10, 10, 100, 200, 300, 100)

        assert x == pytest.approx(30)
        assert y == pytest.approx(5)

    def test_zero_display_size_leaves_coordinates(self):
        assert map_pointer_to_surface(7, 9, 0, 0, 800, 600) == (7, 9)

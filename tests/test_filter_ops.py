"""
Tests for filter operations and the filter effect registry.

Tests cover:
- Quarter-turn rotation
- Colour effects (invert, sepia, grayscale, brightness, contrast)
- Gaussian blur
- Registry registration and lookup
- Filter chain ordering
"""

import unittest

import pytest
from PIL import Image

from OA_Libs.ImageEditingLib.filter_model import FilterParameters
from OA_Libs.ImageEditingLib.filter_ops import (
    FilterEffectRegistry,
    apply_brightness,
    apply_contrast,
    apply_filter_chain,
    apply_gaussian_blur,
    apply_grayscale,
    apply_invert,
    apply_sepia,
    get_default_registry,
    register_default_effects,
    rotate_image,
)


def solid(color, size=(4, 4)):
    return Image.new("RGBA", size, color)


class TestRotateImage:
    """Tests for rotate_image function."""

    def test_zero_returns_copy(self, gradient_image):
        rotated = rotate_image(gradient_image, 0)

        assert rotated is not gradient_image
        assert rotated.tobytes() == gradient_image.tobytes()

    def test_quarter_turn_swaps_dimensions(self):
        image = Image.new("RGBA", (40, 20))

        assert rotate_image(image, 90).size == (20, 40)
        assert rotate_image(image, 180).size == (40, 20)
        assert rotate_image(image, 270).size == (20, 40)

    def test_rotates_clockwise(self):
        """Top-left pixel of a 40x20 image lands at the top-right after 90 degrees."""
        image = Image.new("RGBA", (40, 20), (0, 0, 0, 255))
        image.putpixel((0, 0), (255, 0, 0, 255))

        rotated = rotate_image(image, 90)

        assert rotated.getpixel((19, 0)) == (255, 0, 0, 255)
        assert rotated.getpixel((0, 0)) == (0, 0, 0, 255)

    def test_counter_clockwise_for_270(self):
        image = Image.new("RGBA", (40, 20), (0, 0, 0, 255))
        image.putpixel((0, 0), (255, 0, 0, 255))

        rotated = rotate_image(image, 270)

        assert rotated.getpixel((0, 39)) == (255, 0, 0, 255)

    def test_invalid_rotation_raises(self):
        with pytest.raises(ValueError):
            rotate_image(Image.new("RGBA", (4, 4)), 45)

    def test_non_image_raises(self):
        with pytest.raises(TypeError):
            rotate_image("not an image", 90)


class TestColorEffects:
    """Tests for the pixel-level colour effects."""

    def test_invert(self):
        result = apply_invert(solid((255, 0, 0, 255)))

        assert result.getpixel((0, 0)) == (0, 255, 255, 255)

    def test_invert_twice_is_identity(self, sample_rgba_colors):
        for color in sample_rgba_colors:
            image = solid(color)

            assert apply_invert(apply_invert(image)).getpixel((0, 0)) == color

    def test_sepia_matches_css_matrix(self):
        result = apply_sepia(solid((100, 100, 100, 255)))

        assert result.getpixel((0, 0)) == (135, 120, 94, 255)

    def test_sepia_clips_bright_values(self):
        result = apply_sepia(solid((255, 255, 255, 255)))

        assert result.getpixel((0, 0)) == (255, 255, 239, 255)

    def test_grayscale_uses_rec709_weights(self):
        result = apply_grayscale(solid((255, 0, 0, 255)))

        assert result.getpixel((0, 0)) == (54, 54, 54, 255)

    def test_brightness_scales_channels(self):
        result = apply_brightness(solid((200, 100, 50, 255)), 50)

        assert result.getpixel((0, 0)) == (100, 50, 25, 255)

    def test_brightness_clips_at_white(self):
        result = apply_brightness(solid((200, 100, 50, 255)), 200)

        assert result.getpixel((0, 0)) == (255, 200, 100, 255)

    def test_contrast_stretches_around_mid_grey(self):
        image = Image.new("RGBA", (2, 1))
        image.putpixel((0, 0), (100, 100, 100, 255))
        image.putpixel((1, 0), (200, 200, 200, 255))

        result = apply_contrast(image, 150)

        assert result.getpixel((0, 0)) == (86, 86, 86, 255)
        assert result.getpixel((1, 0)) == (236, 236, 236, 255)

    def test_zero_contrast_gives_mid_grey(self):
        result = apply_contrast(solid((10, 200, 90, 255)), 0)

        assert result.getpixel((0, 0)) == (128, 128, 128, 255)

    @pytest.mark.parametrize("effect", [apply_invert, apply_sepia, apply_grayscale])
    def test_alpha_preserved(self, effect):
        result = effect(solid((120, 30, 200, 77)))

        assert result.getpixel((0, 0))[3] == 77

    def test_output_is_rgba(self):
        result = apply_invert(Image.new("RGB", (3, 3), (0, 0, 0)))

        assert result.mode == "RGBA"
        assert result.getpixel((1, 1)) == (255, 255, 255, 255)


class TestGaussianBlur:
    """Tests for apply_gaussian_blur function."""

    def test_zero_radius_returns_unchanged_copy(self, gradient_image):
        result = apply_gaussian_blur(gradient_image, 0)

        assert result is not gradient_image
        assert result.tobytes() == gradient_image.tobytes()

    def test_negative_radius_raises(self, gradient_image):
        with pytest.raises(ValueError):
            apply_gaussian_blur(gradient_image, -1)

    def test_blur_spreads_a_single_pixel(self):
        image = solid((0, 0, 0, 255), size=(21, 21))
        image.putpixel((10, 10), (255, 255, 255, 255))

        result = apply_gaussian_blur(image, 2)

        assert result.getpixel((10, 10))[0] < 255
        assert result.getpixel((11, 10))[0] > 0

    def test_blur_keeps_alpha(self):
        image = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        for x in range(5):
            for y in range(10):
                image.putpixel((x, y), (255, 0, 0, 255))

        result = apply_gaussian_blur(image, 3)

        assert result.getpixel((7, 5))[3] == 0
        assert result.getpixel((2, 5))[3] == 255


class TestFilterEffectRegistry(unittest.TestCase):
    """Test FilterEffectRegistry basic functionality."""

    def setUp(self):
        """Create a fresh registry for each test."""
        self.registry = FilterEffectRegistry()

    def test_registry_creation(self):
        """Test creating a new registry."""
        self.assertEqual(len(self.registry.list_effects()), 0)

    def test_register_and_apply(self):
        """Test registering an effect and applying it by name."""
        self.registry.register("invert", apply_invert, "Invert")

        result = self.registry.apply("invert", solid((0, 0, 0, 255)), 100)

        self.assertTrue(self.registry.has_effect("invert"))
        self.assertEqual(self.registry.get_description("invert"), "Invert")
        self.assertEqual(result.getpixel((0, 0)), (255, 255, 255, 255))

    def test_names_are_case_insensitive(self):
        self.registry.register("  Sepia ", apply_sepia)

        self.assertTrue(self.registry.has_effect("sepia"))
        self.assertIs(self.registry.get_effect("SEPIA"), apply_sepia)

    def test_duplicate_registration_raises(self):
        """Test that registering twice without unregister fails."""
        self.registry.register("blur", apply_gaussian_blur)

        with self.assertRaises(RuntimeError):
            self.registry.register("blur", apply_gaussian_blur)

    def test_invalid_registration_raises(self):
        with self.assertRaises(ValueError):
            self.registry.register("", apply_invert)
        with self.assertRaises(ValueError):
            self.registry.register("invert", "not callable")

    def test_unknown_effect_raises_key_error(self):
        with self.assertRaises(KeyError):
            self.registry.get_effect("hue-rotate")

    def test_unregister(self):
        self.registry.register("invert", apply_invert)

        self.assertTrue(self.registry.unregister("invert"))
        self.assertFalse(self.registry.unregister("invert"))
        self.assertFalse(self.registry.has_effect("invert"))

    def test_clear(self):
        register_default_effects(self.registry)
        self.registry.clear()

        self.assertEqual(self.registry.list_effects(), [])

    def test_public_methods_documented(self):
        """Every public registry method carries a docstring."""
        for name in dir(FilterEffectRegistry):
            if name.startswith("_"):
                continue
            with self.subTest(method=name):
                self.assertTrue(getattr(FilterEffectRegistry, name).__doc__)

    def test_register_default_effects(self):
        register_default_effects(self.registry)

        self.assertEqual(
            self.registry.list_effects(),
            ["blur", "brightness", "contrast", "grayscale", "invert", "sepia"],
        )


class TestDefaultRegistry(unittest.TestCase):
    """Test the global registry singleton."""

    def test_singleton(self):
        self.assertIs(get_default_registry(), get_default_registry())

    def test_has_builtin_effects(self):
        registry = get_default_registry()

        for effect in ("invert", "sepia", "grayscale", "blur", "brightness", "contrast"):
            self.assertTrue(registry.has_effect(effect))


class TestApplyFilterChain:
    """Tests for apply_filter_chain function."""

    def test_default_params_return_copy(self, gradient_image):
        result = apply_filter_chain(gradient_image, FilterParameters())

        assert result is not gradient_image
        assert result.tobytes() == gradient_image.tobytes()

    def test_chain_order_invert_before_brightness(self):
        """Invert then halve: (201,101,51) -> (54,154,204) -> (27,77,102)."""
        params = FilterParameters(inverted=True, brightness=50)

        result = apply_filter_chain(solid((201, 101, 51, 255)), params)

        assert result.getpixel((0, 0)) == (27, 77, 102, 255)

    def test_rotation_is_not_applied(self):
        image = Image.new("RGBA", (40, 20))

        result = apply_filter_chain(image, FilterParameters(rotation=90))

        assert result.size == (40, 20)

    def test_uses_given_registry(self):
        calls = []
        registry = FilterEffectRegistry()
        registry.register("sepia", lambda image, amount: calls.append(amount) or image)

        apply_filter_chain(solid((1, 2, 3, 255)), FilterParameters(sepia=True), registry)

        assert calls == [100]

    def test_missing_effect_raises(self):
        with pytest.raises(KeyError):
            apply_filter_chain(
                solid((1, 2, 3, 255)),
                FilterParameters(grayscale=True),
                FilterEffectRegistry(),
            )

    def test_non_image_raises(self):
        with pytest.raises(TypeError):
            apply_filter_chain(object(), FilterParameters())

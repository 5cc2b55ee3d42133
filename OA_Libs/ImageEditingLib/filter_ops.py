"""
Pixel-level filter operations and the filter effect registry.

Each effect of a filter chain is applied by a registered function taking an
RGBA PIL Image and the descriptor's amount. The built-in effects reproduce
the CSS filter functions of the same name:

- invert: v' = 255 - v
- sepia: W3C sepia colour matrix
- grayscale: Rec.709 luma matrix
- blur: Gaussian blur, amount is the standard deviation in pixels
- brightness: v' = v * amount / 100
- contrast: v' = (v - 127.5) * amount / 100 + 127.5

Alpha is left untouched by every effect.

Example:
    >>> from PIL import Image
    >>> img = Image.open("photo.png")
    >>> params = FilterParameters(sepia=True, blur=2.0)
    >>> filtered = apply_filter_chain(rotate_image(img, params.rotation), params)
"""

from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

import numpy as np
from PIL import Image, ImageFilter

from OA_Libs.constants import (
    EFFECT_BLUR,
    EFFECT_BRIGHTNESS,
    EFFECT_CONTRAST,
    EFFECT_GRAYSCALE,
    EFFECT_INVERT,
    EFFECT_SEPIA,
    GRAYSCALE_MATRIX,
    SEPIA_MATRIX,
    SURFACE_MODE,
    VALID_ROTATIONS,
)
from OA_Libs.ImageEditingLib.filter_model import FilterParameters, render_filter_chain

logger = logging.getLogger(__name__)

# Type alias for effect functions: (RGBA image, amount) -> RGBA image
EffectFunction = Callable[[Any, float], Any]

# PIL rotates counter-clockwise, the editor rotates clockwise
_ROTATION_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


# ============================================================================
# Geometric transform
# ============================================================================

def rotate_image(image: Any, rotation: int) -> Any:
    """
    Rotate an image clockwise by a quarter-turn multiple.

    The output canvas swaps width and height for 90 and 270 degrees.

    Args:
        image: PIL Image
        rotation: 0, 90, 180 or 270

    Returns:
        Rotated PIL Image (a copy, even for 0 degrees)

    Raises:
        ValueError: If rotation is not a quarter turn
        TypeError: If image is not a PIL Image
    """
    if not hasattr(image, "transpose"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")

    if rotation not in VALID_ROTATIONS:
        raise ValueError(f"rotation must be one of {VALID_ROTATIONS}, got {rotation}")

    if rotation == 0:
        return image.copy()
    return image.transpose(_ROTATION_TRANSPOSE[rotation])


# ============================================================================
# Colour effects
# ============================================================================

def _split_rgb(image: Any):
    rgba = np.asarray(image.convert(SURFACE_MODE), dtype=np.float32)
    return rgba[..., :3], rgba[..., 3:]


def _merge_rgb(rgb: Any, alpha: Any) -> Any:
    rgb = np.clip(rgb, 0, 255)
    merged = np.concatenate([rgb, alpha], axis=-1)
    return Image.fromarray(np.rint(merged).astype(np.uint8), SURFACE_MODE)


def _apply_color_matrix(image: Any, matrix: Sequence[Sequence[float]]) -> Any:
    rgb, alpha = _split_rgb(image)
    transform = np.asarray(matrix, dtype=np.float32)
    return _merge_rgb(rgb @ transform.T, alpha)


def apply_invert(image: Any, amount: float = 100.0) -> Any:
    """Invert colour channels. ``amount`` is accepted for chain symmetry."""
    rgb, alpha = _split_rgb(image)
    return _merge_rgb(255.0 - rgb, alpha)


def apply_sepia(image: Any, amount: float = 100.0) -> Any:
    """Apply full sepia toning."""
    return _apply_color_matrix(image, SEPIA_MATRIX)


def apply_grayscale(image: Any, amount: float = 100.0) -> Any:
    """Convert colours to luma while staying in RGBA."""
    return _apply_color_matrix(image, GRAYSCALE_MATRIX)


def apply_gaussian_blur(image: Any, radius: float) -> Any:
    """
    Apply Gaussian blur to image.

    Args:
        image: PIL Image
        radius: Standard deviation in pixels, 0 returns an unchanged copy

    Returns:
        Blurred RGBA PIL Image

    Raises:
        ValueError: If radius is negative
    """
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    image = image.convert(SURFACE_MODE)
    if radius == 0:
        return image.copy()

    # Colour channels only; alpha is kept as is
    r, g, b, a = image.split()
    blurred = Image.merge("RGB", (r, g, b)).filter(ImageFilter.GaussianBlur(radius=radius))
    return Image.merge(SURFACE_MODE, (*blurred.split(), a))


def apply_brightness(image: Any, amount: float) -> Any:
    """Scale colour channels by ``amount`` percent."""
    rgb, alpha = _split_rgb(image)
    return _merge_rgb(rgb * (float(amount) / 100.0), alpha)


def apply_contrast(image: Any, amount: float) -> Any:
    """Stretch colour channels around mid-grey by ``amount`` percent."""
    rgb, alpha = _split_rgb(image)
    factor = float(amount) / 100.0
    return _merge_rgb((rgb - 127.5) * factor + 127.5, alpha)


# ============================================================================
# Effect registry
# ============================================================================

class FilterEffectRegistry:
    """
    Registry mapping effect names to the functions that apply them.

    Example:
        >>> registry = FilterEffectRegistry()
        >>> registry.register("invert", apply_invert)
        >>> inverted = registry.apply("invert", image, 100)
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._effects: Dict[str, EffectFunction] = {}
        self._descriptions: Dict[str, str] = {}

    def register(self, effect: str, function: EffectFunction, description: str = "") -> None:
        """
        Register an effect function.

        Args:
            effect: Effect name as used in filter descriptors (e.g. "sepia")
            function: Callable accepting (image, amount)
            description: Human-readable description

        Raises:
            ValueError: If effect is empty or function is not callable
            RuntimeError: If effect is already registered
        """
        effect = str(effect).strip().lower()

        if not effect:
            raise ValueError("effect cannot be empty")

        if not callable(function):
            raise ValueError(f"function must be callable, got {type(function)}")

        if effect in self._effects:
            raise RuntimeError(
                f"Effect '{effect}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._effects[effect] = function
        self._descriptions[effect] = str(description)
        logger.debug(f"Registered filter effect: {effect}")

    def unregister(self, effect: str) -> bool:
        """
        Unregister a filter effect.

        Args:
            effect: The effect name to unregister

        Returns:
            True if unregistered, False if effect was not registered
        """
        effect = str(effect).strip().lower()
        if effect in self._effects:
            del self._effects[effect]
            del self._descriptions[effect]
            logger.debug(f"Unregistered filter effect: {effect}")
            return True
        return False

    def get_effect(self, effect: str) -> EffectFunction:
        """
        Get the function for an effect.

        Args:
            effect: The effect name

        Returns:
            The registered effect function

        Raises:
            KeyError: If effect is not registered
        """
        effect = str(effect).strip().lower()
        if effect not in self._effects:
            available = ", ".join(sorted(self._effects)) or "none"
            raise KeyError(f"No filter effect registered for '{effect}'. Available: {available}")
        return self._effects[effect]

    def has_effect(self, effect: str) -> bool:
        """
        Check if a function is registered for an effect.

        Args:
            effect: The effect name to check

        Returns:
            True if the effect is registered, False otherwise
        """
        return str(effect).strip().lower() in self._effects

    def list_effects(self) -> List[str]:
        """
        Get list of all registered effects.

        Returns:
            Sorted list of effect names
        """
        return sorted(self._effects)

    def get_description(self, effect: str) -> str:
        """
        Get the description of an effect.

        Args:
            effect: The effect name

        Returns:
            Description given at registration

        Raises:
            KeyError: If effect is not registered
        """
        self.get_effect(effect)
        return self._descriptions[str(effect).strip().lower()]

    def apply(self, effect: str, image: Any, amount: float) -> Any:
        """Apply a registered effect to an image."""
        return self.get_effect(effect)(image, amount)

    def clear(self) -> None:
        """Clear all registered effects. Use with caution."""
        self._effects.clear()
        self._descriptions.clear()
        logger.warning("Filter effect registry cleared")


# Global singleton registry
_default_registry: Optional[FilterEffectRegistry] = None


def get_default_registry() -> FilterEffectRegistry:
    """
    Get the global default registry (singleton).

    Creates the registry on first call and registers the built-in effects.
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = FilterEffectRegistry()
        register_default_effects(_default_registry)

    return _default_registry


def register_default_effects(registry: FilterEffectRegistry) -> None:
    """Register the six built-in CSS-equivalent effects."""
    registry.register(EFFECT_INVERT, apply_invert, "Invert colour channels")
    registry.register(EFFECT_SEPIA, apply_sepia, "Sepia toning (W3C matrix)")
    registry.register(EFFECT_GRAYSCALE, apply_grayscale, "Rec.709 grayscale")
    registry.register(EFFECT_BLUR, apply_gaussian_blur, "Gaussian blur, amount in px")
    registry.register(EFFECT_BRIGHTNESS, apply_brightness, "Linear brightness, amount in %")
    registry.register(EFFECT_CONTRAST, apply_contrast, "Contrast around mid-grey, amount in %")
    logger.info("Registered default filter effects")


def apply_filter_chain(
    image: Any,
    params: FilterParameters,
    registry: Optional[FilterEffectRegistry] = None,
) -> Any:
    """
    Apply the filter chain of ``params`` to an image, in chain order.

    Rotation is not applied here; see rotate_image.

    Args:
        image: PIL Image (converted to RGBA)
        params: Filter parameters
        registry: Effect registry (default: global registry)

    Returns:
        Filtered RGBA PIL Image. An empty chain returns an RGBA copy.
    """
    if not hasattr(image, "convert"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")

    if registry is None:
        registry = get_default_registry()

    result = image.convert(SURFACE_MODE)
    if result is image:
        result = image.copy()

    for descriptor in render_filter_chain(params):
        result = registry.apply(descriptor.effect, result, descriptor.amount)

    return result

"""
Filter parameter model for Open Annotate.

Holds the adjustable raster filter settings of one image and maps them to an
ordered filter chain. Rotation lives on the same object but is a geometric
transform, so it never appears in the chain.

Classes:
    FilterParameters: Per-image filter settings
    FilterDescriptor: One atomic effect of a filter chain

Functions:
    default_filters: Build the "no modification" parameters
    render_filter_chain: Map parameters to ordered effect descriptors
    filter_chain_css: Join a chain into a CSS filter string
    clamp_filters: Clamp every field to its bounded domain
    rotate_clockwise: Turn the rotation by one quarter
"""

from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, NamedTuple

from OA_Libs.constants import (
    DEFAULT_BLUR,
    DEFAULT_BRIGHTNESS,
    DEFAULT_CONTRAST,
    DEFAULT_GRAYSCALE,
    DEFAULT_INVERTED,
    DEFAULT_ROTATION,
    DEFAULT_SEPIA,
    EFFECT_BLUR,
    EFFECT_BRIGHTNESS,
    EFFECT_CONTRAST,
    EFFECT_GRAYSCALE,
    EFFECT_INVERT,
    EFFECT_SEPIA,
    MAX_BLUR,
    MAX_BRIGHTNESS,
    MAX_CONTRAST,
    MIN_BLUR,
    MIN_BRIGHTNESS,
    MIN_CONTRAST,
    ROTATION_STEP,
)


@dataclass
class FilterParameters:
    """Filter settings for a single image.

    Attributes:
        rotation: Clockwise rotation in degrees (0, 90, 180 or 270)
        inverted: Invert colours
        sepia: Apply full sepia toning
        grayscale: Convert to grayscale
        blur: Gaussian blur standard deviation in pixels (0-20)
        brightness: Brightness percentage (0-200, 100 = unchanged)
        contrast: Contrast percentage (0-200, 100 = unchanged)
    """
    rotation: int = DEFAULT_ROTATION
    inverted: bool = DEFAULT_INVERTED
    sepia: bool = DEFAULT_SEPIA
    grayscale: bool = DEFAULT_GRAYSCALE
    blur: float = DEFAULT_BLUR
    brightness: float = DEFAULT_BRIGHTNESS
    contrast: float = DEFAULT_CONTRAST

    @property
    def is_rotated_sideways(self) -> bool:
        """True when rotation swaps the image's width and height."""
        return self.rotation in (90, 270)

    @property
    def is_default(self) -> bool:
        """True when every field holds its "no modification" default."""
        return self == default_filters()

    def copy(self) -> "FilterParameters":
        """Return an independent copy."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FilterParameters":
        """Create from dictionary, ignoring unknown keys."""
        filtered = {k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__}
        params = cls(**filtered)
        params.rotation = int(params.rotation)
        params.inverted = bool(params.inverted)
        params.sepia = bool(params.sepia)
        params.grayscale = bool(params.grayscale)
        params.blur = float(params.blur)
        params.brightness = float(params.brightness)
        params.contrast = float(params.contrast)
        return params


class FilterDescriptor(NamedTuple):
    """A single effect in a filter chain, e.g. ``blur(4px)``."""
    effect: str
    amount: float
    unit: str = "%"

    def __str__(self) -> str:
        amount = int(self.amount) if float(self.amount).is_integer() else self.amount
        return f"{self.effect}({amount}{self.unit})"


def default_filters() -> FilterParameters:
    """Return a fresh FilterParameters holding the "no modification" defaults."""
    return FilterParameters()


def render_filter_chain(params: FilterParameters) -> List[FilterDescriptor]:
    """
    Map filter parameters to an ordered list of effect descriptors.

    Effects at their no-op value are omitted, so default parameters give an
    empty chain. The order is fixed: invert, sepia, grayscale, blur,
    brightness, contrast. These operations do not commute.

    Args:
        params: Filter parameters to describe

    Returns:
        List of FilterDescriptor in application order
    """
    chain: List[FilterDescriptor] = []
    if params.inverted:
        chain.append(FilterDescriptor(EFFECT_INVERT, 100))
    if params.sepia:
        chain.append(FilterDescriptor(EFFECT_SEPIA, 100))
    if params.grayscale:
        chain.append(FilterDescriptor(EFFECT_GRAYSCALE, 100))
    if params.blur > 0:
        chain.append(FilterDescriptor(EFFECT_BLUR, params.blur, "px"))
    if params.brightness != DEFAULT_BRIGHTNESS:
        chain.append(FilterDescriptor(EFFECT_BRIGHTNESS, params.brightness))
    if params.contrast != DEFAULT_CONTRAST:
        chain.append(FilterDescriptor(EFFECT_CONTRAST, params.contrast))
    return chain


def filter_chain_css(params: FilterParameters) -> str:
    """Return the chain as a space separated CSS ``filter`` value."""
    return " ".join(str(descriptor) for descriptor in render_filter_chain(params))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, float(value)))


def _snap_rotation(rotation: Any) -> int:
    quarter_turns = round(float(rotation) / ROTATION_STEP)
    return int(quarter_turns * ROTATION_STEP) % 360


def clamp_filters(params: FilterParameters) -> FilterParameters:
    """
    Return a copy of ``params`` with every field inside its bounded domain.

    Rotation snaps to the nearest quarter turn; blur, brightness and contrast
    are clamped to their slider ranges.
    """
    return FilterParameters(
        rotation=_snap_rotation(params.rotation),
        inverted=bool(params.inverted),
        sepia=bool(params.sepia),
        grayscale=bool(params.grayscale),
        blur=_clamp(params.blur, MIN_BLUR, MAX_BLUR),
        brightness=_clamp(params.brightness, MIN_BRIGHTNESS, MAX_BRIGHTNESS),
        contrast=_clamp(params.contrast, MIN_CONTRAST, MAX_CONTRAST),
    )


def rotate_clockwise(params: FilterParameters) -> FilterParameters:
    """Return a copy turned 90 degrees clockwise."""
    return replace(params, rotation=(params.rotation + ROTATION_STEP) % 360)

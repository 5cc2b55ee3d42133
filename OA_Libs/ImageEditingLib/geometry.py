"""
Layout and coordinate geometry for the annotation editor.

The source image is letterboxed inside the container: scaled to fit while
keeping its aspect ratio and centred. The annotation surface covers the whole
container, so pointer mapping works in surface space and the layout is only
needed to crop the surface to the image area at export time.

Classes:
    LayoutMetrics: Display rectangle of the image inside the container

Functions:
    compute_layout: Fit a (possibly rotated) image into a container
    map_pointer_to_surface: Convert display coordinates to surface pixels
"""

from dataclasses import dataclass
from typing import Tuple

from OA_Libs.constants import DEFAULT_CONTAINER_PADDING


@dataclass(frozen=True)
class LayoutMetrics:
    """Where the displayed image sits inside the container.

    Attributes:
        offset_x: Left edge of the image in container pixels
        offset_y: Top edge of the image in container pixels
        display_width: Scaled image width
        display_height: Scaled image height
    """
    offset_x: float = 0.0
    offset_y: float = 0.0
    display_width: float = 0.0
    display_height: float = 0.0

    @property
    def is_valid(self) -> bool:
        """False before any layout pass or for degenerate containers."""
        return self.display_width > 0 and self.display_height > 0

    @property
    def aspect_ratio(self) -> float:
        if self.display_height <= 0:
            return 0.0
        return self.display_width / self.display_height

    def crop_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, top, right, bottom) box covering the image area."""
        left = int(round(self.offset_x))
        top = int(round(self.offset_y))
        right = left + max(1, int(round(self.display_width)))
        bottom = top + max(1, int(round(self.display_height)))
        return left, top, right, bottom

    def contains(self, x: float, y: float) -> bool:
        """Whether a surface point falls on the displayed image."""
        return (
            self.offset_x <= x <= self.offset_x + self.display_width
            and self.offset_y <= y <= self.offset_y + self.display_height
        )


def compute_layout(
    source_width: float,
    source_height: float,
    rotation: int,
    container_width: float,
    container_height: float,
    padding: float = DEFAULT_CONTAINER_PADDING,
) -> LayoutMetrics:
    """
    Fit a source image into a container, letterboxing and centring it.

    For 90 and 270 degrees the source width and height are swapped before the
    aspect comparison, since the rendered image occupies the rotated box.

    Args:
        source_width: Intrinsic image width
        source_height: Intrinsic image height
        rotation: Clockwise rotation in degrees
        container_width: Container width in pixels
        container_height: Container height in pixels
        padding: Inset on every side of the fit box; the result is still
                 centred in the full container

    Returns:
        LayoutMetrics. All zeros when any dimension is not positive.

    Example:
        >>> compute_layout(400, 200, 0, 800, 600)
        LayoutMetrics(offset_x=0.0, offset_y=100.0, display_width=800.0, display_height=400.0)
    """
    fit_width = container_width - 2 * padding
    fit_height = container_height - 2 * padding
    if min(source_width, source_height, fit_width, fit_height) <= 0:
        return LayoutMetrics()

    if rotation in (90, 270):
        effective_width, effective_height = source_height, source_width
    else:
        effective_width, effective_height = source_width, source_height

    image_aspect = effective_width / effective_height
    container_aspect = fit_width / fit_height

    if image_aspect > container_aspect:
        display_width = float(fit_width)
        display_height = min(float(fit_height), fit_width / image_aspect)
    else:
        display_height = float(fit_height)
        display_width = min(float(fit_width), fit_height * image_aspect)

    offset_x = (container_width - display_width) / 2
    offset_y = (container_height - display_height) / 2

    return LayoutMetrics(
        offset_x=float(offset_x),
        offset_y=float(offset_y),
        display_width=float(display_width),
        display_height=float(display_height),
    )


def map_pointer_to_surface(
    raw_x: float,
    raw_y: float,
    css_width: float,
    css_height: float,
    pixel_width: float,
    pixel_height: float,
) -> Tuple[float, float]:
    """
    Convert a pointer position in the surface's display box to surface pixels.

    Corrects for a backing resolution that differs from the displayed size
    (device pixel ratio, CSS scaling).

    Args:
        raw_x: Pointer x relative to the surface's displayed box
        raw_y: Pointer y relative to the surface's displayed box
        css_width: Displayed surface width
        css_height: Displayed surface height
        pixel_width: Surface backing width in pixels
        pixel_height: Surface backing height in pixels

    Returns:
        (x, y) in surface pixel coordinates
    """
    scale_x = pixel_width / css_width if css_width > 0 else 1.0
    scale_y = pixel_height / css_height if css_height > 0 else 1.0
    return raw_x * scale_x, raw_y * scale_y

"""
Raster drawing primitives for the annotation layer.

Every primitive renders its shape into an 8-bit coverage mask limited to the
shape's bounding box, then either paints the configured colour through the
mask (source-over at the given opacity) or removes annotation alpha through
it (destination-out at the given opacity). The raster is modified in place.

Functions:
    draw_segment: Round-capped line segment (brush and eraser strokes)
    draw_rectangle: Stroke-only rectangle between two corners
    draw_circle: Stroke-only circle around a centre
    draw_arrow: Line with a filled triangular head
    draw_text: Text stamped with its baseline at the given point
    arrow_head_points: Back vertices of an arrow head
    parse_color: CSS colour string to an RGB tuple
    load_font: Font of a given pixel size
"""

from functools import lru_cache
from typing import Any, Callable, Iterable, Optional, Tuple
import math

import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

from OA_Libs.constants import (
    ARROW_HEAD_ANGLE_DEG,
    ARROW_HEAD_SCALE,
    FONT_CANDIDATES,
    SURFACE_MODE,
)

Point = Tuple[float, float]
Box = Tuple[int, int, int, int]


def parse_color(color: str) -> Tuple[int, int, int]:
    """
    Parse a CSS colour ("#ff0000", "#f00", "red", "rgb(...)").

    Raises:
        ValueError: If the colour string is not recognised
    """
    rgb = ImageColor.getrgb(color)
    return rgb[0], rgb[1], rgb[2]


@lru_cache(maxsize=32)
def load_font(size: int) -> Any:
    """Return a scalable font of ``size`` pixels, preferring Arial."""
    size = max(1, int(size))
    for name in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _px(value: float) -> int:
    return int(math.floor(value + 0.5))


def _bounds(points: Iterable[Point], pad: float, surface_size: Tuple[int, int]) -> Optional[Box]:
    """Padded integer bounding box of ``points`` clipped to the surface."""
    points = list(points)
    width, height = surface_size
    left = max(0, int(math.floor(min(x for x, _ in points) - pad)))
    top = max(0, int(math.floor(min(y for _, y in points) - pad)))
    right = min(width, int(math.ceil(max(x for x, _ in points) + pad)) + 1)
    bottom = min(height, int(math.ceil(max(y for _, y in points) + pad)) + 1)
    if right <= left or bottom <= top:
        return None
    return left, top, right, bottom


def _render(
    raster: Any,
    box: Optional[Box],
    draw_mask: Callable[[Any, float, float], None],
    color: str,
    opacity: float,
    erase: bool = False,
) -> None:
    """
    Render a coverage mask for ``box`` and apply it to the raster.

    ``draw_mask`` receives an ImageDraw on the mask and the box origin, and
    must subtract the origin from every coordinate it draws.
    """
    if box is None or opacity <= 0:
        return

    left, top, right, bottom = box
    mask = Image.new("L", (right - left, bottom - top), 0)
    draw_mask(ImageDraw.Draw(mask), float(left), float(top))

    if mask.getbbox() is None:
        return

    if erase:
        _erase_through_mask(raster, mask, (left, top), opacity)
    else:
        _paint_through_mask(raster, mask, (left, top), color, opacity)


def _paint_through_mask(raster: Any, mask: Any, origin: Tuple[int, int], color: str, opacity: float) -> None:
    r, g, b = parse_color(color)
    overlay = Image.new(SURFACE_MODE, mask.size, (r, g, b, 0))
    overlay.putalpha(mask.point(lambda v: int(round(v * opacity))))
    raster.alpha_composite(overlay, dest=origin)


def _erase_through_mask(raster: Any, mask: Any, origin: Tuple[int, int], opacity: float) -> None:
    left, top = origin
    box = (left, top, left + mask.width, top + mask.height)
    region = np.array(raster.crop(box), dtype=np.float32)
    coverage = np.asarray(mask, dtype=np.float32) / 255.0 * opacity

    region[..., 3] *= 1.0 - coverage
    region = np.rint(region)
    region[region[..., 3] == 0] = 0

    raster.paste(Image.fromarray(region.astype(np.uint8), SURFACE_MODE), box)


def _round_line(draw: Any, start: Point, end: Point, size: int) -> None:
    """Line with round caps, as a canvas stroke with lineCap='round'."""
    draw.line([start, end], fill=255, width=size)
    if size > 1:
        radius = size / 2.0
        for x, y in (start, end):
            draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=255)
    elif start == end:
        draw.point([start], fill=255)


def draw_segment(
    raster: Any,
    start: Point,
    end: Point,
    color: str,
    size: int,
    opacity: float = 1.0,
    erase: bool = False,
) -> None:
    """
    Commit one stroke segment onto the raster.

    Args:
        raster: RGBA PIL Image, modified in place
        start: Previous pointer position
        end: Current pointer position
        color: Stroke colour (ignored when erasing)
        size: Stroke width in pixels
        opacity: 0.0-1.0
        erase: Remove annotation alpha instead of painting
    """
    box = _bounds([start, end], size / 2.0 + 1, raster.size)

    def draw_mask(draw, ox, oy):
        _round_line(draw, (start[0] - ox, start[1] - oy), (end[0] - ox, end[1] - oy), size)

    _render(raster, box, draw_mask, color, opacity, erase)


def draw_rectangle(
    raster: Any,
    anchor: Point,
    release: Point,
    color: str,
    size: int,
    opacity: float = 1.0,
) -> None:
    """
    Stamp a stroke-only rectangle with corners ``anchor`` and ``release``.

    The stroke is centred on the rectangle's path, like a canvas strokeRect,
    so a width of ``size`` straddles each edge. A zero-area rectangle (press
    and release on the same point) draws nothing.
    """
    x0, x1 = sorted((anchor[0], release[0]))
    y0, y1 = sorted((anchor[1], release[1]))
    if x0 == x1 and y0 == y1:
        return
    half = size / 2.0
    box = _bounds([(x0, y0), (x1, y1)], half + 1, raster.size)

    def draw_mask(draw, ox, oy):
        outer = [
            _px(x0 - half - ox),
            _px(y0 - half - oy),
            _px(x1 + half - ox) - 1,
            _px(y1 + half - oy) - 1,
        ]
        if outer[2] < outer[0] or outer[3] < outer[1]:
            return
        draw.rectangle(outer, outline=255, width=size)

    _render(raster, box, draw_mask, color, opacity)


def draw_circle(
    raster: Any,
    center: Point,
    radius: float,
    color: str,
    size: int,
    opacity: float = 1.0,
) -> None:
    """Stamp a stroke-only circle; a zero radius draws nothing."""
    if radius <= 0:
        return

    cx, cy = center
    half = size / 2.0
    reach = radius + half
    box = _bounds([(cx - reach, cy - reach), (cx + reach, cy + reach)], 1, raster.size)

    def draw_mask(draw, ox, oy):
        draw.ellipse(
            [cx - reach - ox, cy - reach - oy, cx + reach - ox, cy + reach - oy],
            outline=255,
            width=size,
        )

    _render(raster, box, draw_mask, color, opacity)


def arrow_head_points(start: Point, tip: Point, head_length: float) -> Tuple[Point, Point]:
    """
    Back vertices of the arrow head at ``tip``.

    The head vector of ``head_length`` along the shaft direction is rotated by
    -30 and +30 degrees and subtracted from the tip.
    """
    angle = math.atan2(tip[1] - start[1], tip[0] - start[0])
    spread = math.radians(ARROW_HEAD_ANGLE_DEG)
    left = (
        tip[0] - head_length * math.cos(angle - spread),
        tip[1] - head_length * math.sin(angle - spread),
    )
    right = (
        tip[0] - head_length * math.cos(angle + spread),
        tip[1] - head_length * math.sin(angle + spread),
    )
    return left, right


def draw_arrow(
    raster: Any,
    start: Point,
    tip: Point,
    color: str,
    size: int,
    opacity: float = 1.0,
) -> None:
    """Stamp a shaft from ``start`` to ``tip`` plus a filled head."""
    head_left, head_right = arrow_head_points(start, tip, size * ARROW_HEAD_SCALE)
    box = _bounds([start, tip, head_left, head_right], size / 2.0 + 1, raster.size)

    def draw_mask(draw, ox, oy):
        _round_line(draw, (start[0] - ox, start[1] - oy), (tip[0] - ox, tip[1] - oy), size)
        draw.polygon(
            [
                (tip[0] - ox, tip[1] - oy),
                (head_left[0] - ox, head_left[1] - oy),
                (head_right[0] - ox, head_right[1] - oy),
            ],
            fill=255,
        )

    _render(raster, box, draw_mask, color, opacity)


def draw_text(
    raster: Any,
    text: str,
    position: Point,
    color: str,
    font_size: int,
    opacity: float = 1.0,
) -> None:
    """
    Stamp text with the left end of its baseline at ``position``.

    Args:
        raster: RGBA PIL Image, modified in place
        text: Text to render
        position: Baseline-left point in surface coordinates
        color: Fill colour
        font_size: Font size in pixels
        opacity: 0.0-1.0
    """
    if not text:
        return

    font = load_font(font_size)
    x, y = position
    box = (0, 0, raster.width, raster.height)

    def draw_mask(draw, ox, oy):
        if isinstance(font, ImageFont.FreeTypeFont):
            draw.text((x - ox, y - oy), text, fill=255, font=font, anchor="ls")
        else:
            # Bitmap fonts only anchor at the top-left
            draw.text((x - ox, y - oy - font.getbbox(text)[3]), text, fill=255, font=font)

    _render(raster, box, draw_mask, color, opacity)

"""
Annotation surface for one image.

The surface is a transparent RGBA raster covering the editor container, laid
over (but independent of) the filtered base image. Brush and eraser strokes
are committed segment by segment while the pointer moves; rectangles,
circles and arrows are stamped once on release; text is stamped when
confirmed and also kept as a record so single texts can be removed by
replaying the rest onto a cleared raster.

State machine::

    IDLE --down(brush/shape/eraser)--> DRAWING --up/leave--> IDLE
    IDLE --down(text)--> PLACING_TEXT --confirm/cancel--> IDLE

Example:
    >>> surface = AnnotationSurface(800, 600)
    >>> surface.set_tool(Tool.RECTANGLE)
    >>> surface.pointer_down(10, 10)
    >>> surface.pointer_up(110, 60)
    >>> surface.has_content()
    True
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
import logging
import math

from PIL import Image

from OA_Libs.constants import (
    DEFAULT_COLOR,
    DEFAULT_OPACITY,
    DEFAULT_STROKE_SIZE,
    DEFAULT_TOOL,
    MAX_OPACITY,
    MAX_STROKE_SIZE,
    MIN_OPACITY,
    MIN_STROKE_SIZE,
    SURFACE_MODE,
    TEXT_SIZE_SCALE,
)
from OA_Libs.AnnotationLib.drawing_ops import (
    draw_arrow,
    draw_circle,
    draw_rectangle,
    draw_segment,
    draw_text,
    parse_color,
)

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


class Tool(Enum):
    """Drawing tools."""
    BRUSH = "brush"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"
    TEXT = "text"
    ERASER = "eraser"


class SurfaceState(Enum):
    """Interaction state of a surface."""
    IDLE = "idle"
    DRAWING = "drawing"
    PLACING_TEXT = "placing_text"


STROKE_TOOLS = (Tool.BRUSH, Tool.ERASER)


@dataclass
class DrawingStyle:
    """Tool and stroke settings.

    Attributes:
        tool: Active tool
        color: CSS colour string
        size: Stroke width in pixels (1-50)
        opacity: Opacity percentage (10-100)
    """
    tool: Tool = Tool(DEFAULT_TOOL)
    color: str = DEFAULT_COLOR
    size: int = DEFAULT_STROKE_SIZE
    opacity: int = DEFAULT_OPACITY

    @property
    def alpha(self) -> float:
        """Opacity as a 0.0-1.0 fraction."""
        return self.opacity / 100.0

    @property
    def text_size(self) -> int:
        return self.size * TEXT_SIZE_SCALE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tool": self.tool.value,
            "color": self.color,
            "size": self.size,
            "opacity": self.opacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DrawingStyle":
        """Create from dictionary, clamping size and opacity."""
        style = cls()
        style.tool = Tool(data.get("tool", DEFAULT_TOOL))
        style.color = str(data.get("color", DEFAULT_COLOR))
        style.size = clamp_size(data.get("size", DEFAULT_STROKE_SIZE))
        style.opacity = clamp_opacity(data.get("opacity", DEFAULT_OPACITY))
        return style


def clamp_size(size: Any) -> int:
    return int(max(MIN_STROKE_SIZE, min(MAX_STROKE_SIZE, round(float(size)))))


def clamp_opacity(opacity: Any) -> int:
    return int(max(MIN_OPACITY, min(MAX_OPACITY, round(float(opacity)))))


@dataclass
class TextAnnotation:
    """A placed text, kept so the raster can be rebuilt without it.

    Attributes:
        id: Unique identifier
        text: The text
        x: Baseline-left x in surface coordinates
        y: Baseline y in surface coordinates
        color: Fill colour
        size: Font size in pixels
        opacity: Opacity percentage
    """
    text: str
    x: float
    y: float
    color: str = DEFAULT_COLOR
    size: int = DEFAULT_STROKE_SIZE * TEXT_SIZE_SCALE
    opacity: int = DEFAULT_OPACITY
    id: str = field(default_factory=lambda: str(uuid4()))

    def stamp(self, raster: Any) -> None:
        draw_text(raster, self.text, (self.x, self.y), self.color, self.size, self.opacity / 100.0)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AnnotationSurface:
    """
    Drawable annotation layer of one image.

    Attributes:
        raster: RGBA PIL Image the annotations are painted on
        texts: Placed text annotations in placement order
        style: Current tool and stroke settings
        state: Current SurfaceState
    """

    def __init__(self, width: int = 1, height: int = 1, style: Optional[DrawingStyle] = None):
        if width < 1 or height < 1:
            raise ValueError(f"surface size must be positive, got {width}x{height}")

        self.raster = Image.new(SURFACE_MODE, (int(width), int(height)), TRANSPARENT)
        self.texts: List[TextAnnotation] = []
        self.style = style or DrawingStyle()
        self.state = SurfaceState.IDLE
        self._anchor: Optional[Tuple[float, float]] = None
        self._last_point: Optional[Tuple[float, float]] = None
        self._pending_text_position: Optional[Tuple[float, float]] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self.raster.width

    @property
    def height(self) -> int:
        return self.raster.height

    @property
    def size(self) -> Tuple[int, int]:
        return self.raster.size

    @property
    def pending_text_position(self) -> Optional[Tuple[float, float]]:
        return self._pending_text_position

    # ------------------------------------------------------------------
    # Style
    # ------------------------------------------------------------------

    def set_tool(self, tool) -> None:
        """Switch tool; a pending shape or text placement is dropped."""
        tool = Tool(tool)
        if tool != self.style.tool:
            self._reset_interaction()
            logger.debug(f"Tool changed: {self.style.tool.value} -> {tool.value}")
        self.style.tool = tool

    def set_color(self, color: str) -> None:
        parse_color(color)
        self.style.color = color

    def set_size(self, size: Any) -> None:
        self.style.size = clamp_size(size)

    def set_opacity(self, opacity: Any) -> None:
        self.style.opacity = clamp_opacity(opacity)

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def pointer_down(self, x: float, y: float) -> None:
        """
        Start a stroke or shape, or record where text will be placed.

        A second press while already drawing restarts from the new point.
        """
        tool = self.style.tool
        if tool == Tool.TEXT:
            self._pending_text_position = (float(x), float(y))
            self.state = SurfaceState.PLACING_TEXT
            return

        self._pending_text_position = None
        self._anchor = (float(x), float(y))
        self._last_point = self._anchor
        self.state = SurfaceState.DRAWING

    def pointer_move(self, x: float, y: float) -> None:
        """Commit a stroke segment for brush and eraser; shapes wait for release."""
        if self.state != SurfaceState.DRAWING or self.style.tool not in STROKE_TOOLS:
            return

        point = (float(x), float(y))
        draw_segment(
            self.raster,
            self._last_point,
            point,
            self.style.color,
            self.style.size,
            self.style.alpha,
            erase=self.style.tool == Tool.ERASER,
        )
        self._last_point = point

    def pointer_up(self, x: float, y: float) -> None:
        """Finish drawing, stamping a rectangle, circle or arrow from the anchor."""
        if self.state != SurfaceState.DRAWING:
            return

        tool = self.style.tool
        release = (float(x), float(y))
        if tool == Tool.RECTANGLE:
            draw_rectangle(self.raster, self._anchor, release, self.style.color, self.style.size, self.style.alpha)
        elif tool == Tool.CIRCLE:
            radius = math.hypot(release[0] - self._anchor[0], release[1] - self._anchor[1])
            draw_circle(self.raster, self._anchor, radius, self.style.color, self.style.size, self.style.alpha)
        elif tool == Tool.ARROW:
            draw_arrow(self.raster, self._anchor, release, self.style.color, self.style.size, self.style.alpha)

        self._reset_interaction()

    def pointer_leave(self) -> None:
        """Cancel drawing without stamping; committed stroke segments stay."""
        if self.state == SurfaceState.DRAWING:
            self._reset_interaction()

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def confirm_text(self, text: str) -> Optional[TextAnnotation]:
        """
        Place ``text`` at the pending position.

        Returns:
            The new TextAnnotation, or None if nothing was pending or the text
            is blank (the pending position is dropped either way)
        """
        if self.state != SurfaceState.PLACING_TEXT or self._pending_text_position is None:
            return None

        x, y = self._pending_text_position
        self._pending_text_position = None
        self.state = SurfaceState.IDLE

        if not text or not text.strip():
            return None

        annotation = TextAnnotation(
            text=text,
            x=x,
            y=y,
            color=self.style.color,
            size=self.style.text_size,
            opacity=self.style.opacity,
        )
        self.texts.append(annotation)
        annotation.stamp(self.raster)
        return annotation

    def cancel_text(self) -> None:
        self._pending_text_position = None
        if self.state == SurfaceState.PLACING_TEXT:
            self.state = SurfaceState.IDLE

    def remove_text(self, annotation_id: str) -> bool:
        """
        Remove a placed text and rebuild the raster from the remaining texts.

        Strokes and shapes are not retained, so they are lost by the rebuild.

        Returns:
            True if a text with that id was removed
        """
        remaining = [t for t in self.texts if t.id != annotation_id]
        if len(remaining) == len(self.texts):
            return False

        self.texts = remaining
        self._wipe_raster()
        for annotation in self.texts:
            annotation.stamp(self.raster)
        logger.debug(f"Removed text {annotation_id}, replayed {len(self.texts)} text(s)")
        return True

    def get_text(self, annotation_id: str) -> TextAnnotation:
        for annotation in self.texts:
            if annotation.id == annotation_id:
                return annotation
        raise KeyError(f"No text annotation with id '{annotation_id}'")

    # ------------------------------------------------------------------
    # Whole-surface operations
    # ------------------------------------------------------------------

    def clear(self) -> None:
        """Wipe the raster and drop every text annotation."""
        self._wipe_raster()
        self.texts = []
        self._reset_interaction()

    def resize(self, width: int, height: int) -> None:
        """
        Resize the surface to a new container size.

        The raster is recreated, so all content is invalidated. Resizing to
        the current size keeps the content.
        """
        width, height = int(width), int(height)
        if width < 1 or height < 1:
            raise ValueError(f"surface size must be positive, got {width}x{height}")
        if (width, height) == self.size:
            return

        self.raster = Image.new(SURFACE_MODE, (width, height), TRANSPARENT)
        self.texts = []
        self._reset_interaction()
        logger.debug(f"Annotation surface resized to {width}x{height}")

    def load_raster(self, raster: Optional[Any]) -> None:
        """
        Replace the raster with an externally supplied image.

        The image is scaled to the surface size. Text records are dropped
        since they are no longer separable from the pixels. None clears.
        """
        if raster is None:
            self.clear()
            return

        if not hasattr(raster, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(raster)}")

        raster = raster.convert(SURFACE_MODE)
        if raster.size != self.size:
            raster = raster.resize(self.size, Image.Resampling.LANCZOS)
        self.raster = raster
        self.texts = []
        self._reset_interaction()

    def has_content(self) -> bool:
        """True if any text is placed or any pixel is not fully transparent."""
        if self.texts:
            return True
        _, alpha_max = self.raster.getchannel("A").getextrema()
        return alpha_max > 0

    def snapshot(self) -> "AnnotationSurface":
        """Independent copy of raster, texts and style, for hand-off to a worker."""
        copy = AnnotationSurface(self.width, self.height, DrawingStyle(**asdict(self.style)))
        copy.raster = self.raster.copy()
        copy.texts = [TextAnnotation(**t.to_dict()) for t in self.texts]
        return copy

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _wipe_raster(self) -> None:
        self.raster.paste(TRANSPARENT, (0, 0, self.width, self.height))

    def _reset_interaction(self) -> None:
        self.state = SurfaceState.IDLE
        self._anchor = None
        self._last_point = None
        self._pending_text_position = None

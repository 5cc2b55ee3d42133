"""
Multi-image editing session.

An EditSession holds one entry per attached image. Each entry owns its own
FilterParameters and AnnotationSurface; selecting another image never clears
anything. All surfaces share the container size and the session's drawing
style, so tool settings carry over when the user switches images.

Classes:
    SessionEntry: Source image plus its filters, annotations and layout
    EditSession: Ordered entries and the active index
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
import concurrent.futures
import io
import logging

from PIL import Image, UnidentifiedImageError

from OA_Libs.constants import DEFAULT_CONTAINER_PADDING
from OA_Libs.AnnotationLib.annotation_surface import (
    AnnotationSurface,
    DrawingStyle,
    TextAnnotation,
    Tool,
    clamp_opacity,
    clamp_size,
)
from OA_Libs.AnnotationLib.drawing_ops import parse_color
from OA_Libs.ImageEditingLib.compositor import export_image
from OA_Libs.ImageEditingLib.filter_model import (
    FilterParameters,
    clamp_filters,
    default_filters,
    rotate_clockwise,
)
from OA_Libs.ImageEditingLib.geometry import (
    LayoutMetrics,
    compute_layout,
    map_pointer_to_surface,
)
from OA_Libs.ImageEditingLib.image_models import (
    ExportResult,
    ImageDecodeError,
    ImageEditError,
    SourceImage,
)

logger = logging.getLogger(__name__)

SourceLike = Union[SourceImage, bytes, str, Path, Any]


@dataclass
class SessionEntry:
    """One image of the session.

    Attributes:
        source: Decoded source image, None if decoding failed
        filters: Current filter parameters
        surface: Annotation surface
        layout: Layout from the last layout pass
        decode_error: Why the source could not be decoded, if it could not
        label: Display name
    """
    source: Optional[SourceImage]
    filters: FilterParameters = field(default_factory=default_filters)
    surface: AnnotationSurface = field(default_factory=AnnotationSurface)
    layout: LayoutMetrics = field(default_factory=LayoutMetrics)
    decode_error: Optional[str] = None
    label: str = ""

    @property
    def is_ready(self) -> bool:
        """True once the source is decoded and the entry can be edited."""
        return self.source is not None and self.decode_error is None

    def ensure_ready(self) -> None:
        if not self.is_ready:
            raise ImageDecodeError(self.decode_error or f"Image '{self.label}' is not decoded")


def _is_source_like(item: Any) -> bool:
    """Whether ``item`` is one of the input kinds _coerce_source accepts."""
    if isinstance(item, (SourceImage, bytes, bytearray, Path, str)):
        return True
    if isinstance(item, tuple):
        return len(item) == 2
    return hasattr(item, "convert")


def _coerce_source(item: SourceLike, position: int) -> SourceImage:
    """Decode any supported input into a SourceImage."""
    label = f"image-{position}"
    if isinstance(item, SourceImage):
        return item
    if isinstance(item, (bytes, bytearray)):
        return SourceImage.from_bytes(bytes(item), label=label)
    if isinstance(item, Path):
        return SourceImage.from_path(item)
    if isinstance(item, str):
        if item.startswith("data:"):
            return SourceImage.from_data_url(item, label=label)
        return SourceImage.from_base64(item, label=label)
    if isinstance(item, tuple) and len(item) == 2:
        data, mime_type = item
        return SourceImage.from_base64(data, mime_type, label=label)
    if hasattr(item, "convert"):
        return SourceImage.from_image(item, label=label)
    raise TypeError(f"Unsupported image source: {type(item)}")


class EditSession:
    """
    Working set of images being edited together.

    Example:
        >>> session = EditSession(800, 600)
        >>> session.add_images([png_bytes_a, png_bytes_b])
        >>> session.set_tool("arrow")
        >>> session.pointer_down(100, 100)
        >>> session.pointer_up(300, 200)
        >>> results = session.export_all()
    """

    def __init__(
        self,
        container_width: int = 1,
        container_height: int = 1,
        padding: float = DEFAULT_CONTAINER_PADDING,
        style: Optional[DrawingStyle] = None,
    ):
        if container_width < 1 or container_height < 1:
            raise ValueError(
                f"container size must be positive, got {container_width}x{container_height}"
            )
        self._entries: List[SessionEntry] = []
        self._active_index = 0
        self._container = (int(container_width), int(container_height))
        self._padding = padding
        self.style = style or DrawingStyle()

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[SessionEntry, ...]:
        return tuple(self._entries)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_entry(self) -> Optional[SessionEntry]:
        if not self._entries:
            return None
        return self._entries[self._active_index]

    @property
    def container_size(self) -> Tuple[int, int]:
        return self._container

    def get_entry(self, index: int) -> SessionEntry:
        if not 0 <= index < len(self._entries):
            raise IndexError(f"image index {index} out of range (0-{len(self._entries) - 1})")
        return self._entries[index]

    def _require_active(self) -> SessionEntry:
        entry = self.active_entry
        if entry is None:
            raise IndexError("session has no images")
        entry.ensure_ready()
        return entry

    def add_images(self, sources: Iterable[SourceLike]) -> List[SessionEntry]:
        """
        Append one entry per source with default filters and an empty surface.

        Sources may be SourceImage objects, raw bytes, base64 strings,
        ``(base64, mime_type)`` tuples, data URLs, paths or PIL Images. A source
        that fails to decode still gets an entry, marked with its error.

        Returns:
            The new entries

        Raises:
            TypeError: If any source is of an unsupported kind; no entry is
                       added in that case
        """
        sources = list(sources)
        for item in sources:
            if not _is_source_like(item):
                raise TypeError(f"Unsupported image source: {type(item)}")

        was_empty = not self._entries
        added: List[SessionEntry] = []

        for item in sources:
            position = len(self._entries)
            try:
                source = _coerce_source(item, position)
                entry = SessionEntry(
                    source=source,
                    filters=default_filters(),
                    surface=AnnotationSurface(*self._container, style=self.style),
                    label=source.label or f"image-{position}",
                )
                entry.layout = self._layout_for(entry)
            except (ImageDecodeError, FileNotFoundError, ValueError) as e:
                logger.warning(f"Could not decode image {position}: {e}")
                entry = SessionEntry(
                    source=None,
                    surface=AnnotationSurface(*self._container, style=self.style),
                    decode_error=str(e),
                    label=f"image-{position}",
                )
            self._entries.append(entry)
            added.append(entry)

        if was_empty and self._entries:
            self._active_index = 0

        logger.info(f"Added {len(added)} image(s), session now holds {len(self._entries)}")
        return added

    def select_image(self, index: int) -> SessionEntry:
        """
        Make ``index`` the active image.

        An unfinished shape or text placement on the previous image is
        dropped; committed annotations and filters of every image are kept.
        """
        entry = self.get_entry(index)
        previous = self.active_entry
        if previous is not None and previous is not entry:
            previous.surface.pointer_leave()
            previous.surface.cancel_text()
        self._active_index = index
        return entry

    def remove_image(self, index: int) -> SessionEntry:
        """
        Remove an entry and keep the active index on a valid image.

        Returns:
            The removed entry
        """
        entry = self.get_entry(index)
        del self._entries[index]

        if not self._entries:
            self._active_index = 0
        elif index == self._active_index:
            self._active_index = min(index, len(self._entries) - 1)
        elif index < self._active_index:
            self._active_index -= 1

        logger.info(f"Removed image {index} ({entry.label})")
        return entry

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _layout_for(self, entry: SessionEntry) -> LayoutMetrics:
        if entry.source is None:
            return LayoutMetrics()
        return compute_layout(
            entry.source.width,
            entry.source.height,
            entry.filters.rotation,
            self._container[0],
            self._container[1],
            self._padding,
        )

    def set_container_size(self, width: int, height: int) -> None:
        """
        Apply a new container size.

        Every surface is resized (its content is invalidated when the size
        actually changes) and every layout is recomputed.
        """
        if width < 1 or height < 1:
            raise ValueError(f"container size must be positive, got {width}x{height}")

        self._container = (int(width), int(height))
        for entry in self._entries:
            entry.surface.resize(*self._container)
            entry.layout = self._layout_for(entry)

    def layout(self, index: Optional[int] = None) -> LayoutMetrics:
        """Current layout of ``index`` (default: the active image)."""
        if index is None:
            index = self._active_index
        return self.get_entry(index).layout

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def update_filters(self, index: int, params: FilterParameters) -> None:
        """
        Replace the filters of an entry wholesale.

        Magnitudes are not checked here; clamp with clamp_filters (or use
        adjust_filter) before calling. A rotation change clears the
        entry's annotations and recomputes its layout.
        """
        entry = self.get_entry(index)
        rotation_changed = params.rotation != entry.filters.rotation
        entry.filters = params

        if rotation_changed:
            entry.surface.clear()
            entry.layout = self._layout_for(entry)
            logger.debug(f"Image {index} rotated to {params.rotation}, annotations cleared")

    def current_filters(self) -> Optional[FilterParameters]:
        """Copy of the active image's filters, for the host UI to persist."""
        entry = self.active_entry
        if entry is None:
            return None
        return entry.filters.copy()

    def adjust_filter(self, index: int, name: str, value: Any) -> FilterParameters:
        """
        Set a single filter field, clamped to its bounds.

        Raises:
            KeyError: If ``name`` is not a filter field
        """
        entry = self.get_entry(index)
        if name not in FilterParameters.__dataclass_fields__:
            raise KeyError(f"Unknown filter field: {name}")

        params = clamp_filters(replace(entry.filters, **{name: value}))
        self.update_filters(index, params)
        return params

    def rotate_active(self) -> FilterParameters:
        """Turn the active image 90 degrees clockwise."""
        self._require_active()
        params = rotate_clockwise(self.active_entry.filters)
        self.update_filters(self._active_index, params)
        return params

    def reset_filters(self, index: int) -> None:
        self.update_filters(index, default_filters())

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    def update_annotations(self, index: int, raster_bytes: Optional[bytes] = None) -> None:
        """
        Replace an entry's annotation raster with an encoded image.

        ``None`` clears the entry's annotations.

        Raises:
            ImageDecodeError: If the bytes are not a decodable image
        """
        entry = self.get_entry(index)
        if raster_bytes is None:
            entry.surface.clear()
            return

        try:
            with Image.open(io.BytesIO(raster_bytes)) as opened:
                opened.load()
                raster = opened.copy()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ImageDecodeError(f"Failed to decode annotation raster: {str(e)}") from e

        entry.surface.load_raster(raster)

    def set_tool(self, tool) -> None:
        self.set_drawing_style(tool=tool)

    def set_drawing_style(
        self,
        tool: Optional[Any] = None,
        color: Optional[str] = None,
        size: Optional[Any] = None,
        opacity: Optional[Any] = None,
    ) -> DrawingStyle:
        """
        Update any of the shared drawing settings.

        Size and opacity are clamped to their ranges; an unknown colour or
        tool raises ValueError.
        """
        if tool is not None:
            entry = self.active_entry
            if entry is not None:
                entry.surface.set_tool(tool)
            else:
                self.style.tool = Tool(tool)
        if color is not None:
            parse_color(color)
            self.style.color = color
        if size is not None:
            self.style.size = clamp_size(size)
        if opacity is not None:
            self.style.opacity = clamp_opacity(opacity)
        return self.style

    def _to_surface(self, x: float, y: float, css_size: Optional[Tuple[float, float]]) -> Tuple[float, float]:
        if css_size is None:
            return x, y
        width, height = self._container
        return map_pointer_to_surface(x, y, css_size[0], css_size[1], width, height)

    def pointer_down(self, x: float, y: float, css_size: Optional[Tuple[float, float]] = None) -> None:
        """
        Forward a pointer press to the active surface.

        Args:
            x: Pointer x relative to the surface's displayed box
            y: Pointer y relative to the surface's displayed box
            css_size: Displayed (width, height) of the surface, when it
                      differs from the container's pixel size
        """
        self._require_active().surface.pointer_down(*self._to_surface(x, y, css_size))

    def pointer_move(self, x: float, y: float, css_size: Optional[Tuple[float, float]] = None) -> None:
        self._require_active().surface.pointer_move(*self._to_surface(x, y, css_size))

    def pointer_up(self, x: float, y: float, css_size: Optional[Tuple[float, float]] = None) -> None:
        self._require_active().surface.pointer_up(*self._to_surface(x, y, css_size))

    def pointer_leave(self) -> None:
        entry = self.active_entry
        if entry is not None:
            entry.surface.pointer_leave()

    def confirm_text(self, text: str) -> Optional[TextAnnotation]:
        return self._require_active().surface.confirm_text(text)

    def cancel_text(self) -> None:
        entry = self.active_entry
        if entry is not None:
            entry.surface.cancel_text()

    def remove_text(self, annotation_id: str) -> bool:
        return self._require_active().surface.remove_text(annotation_id)

    def clear_annotations(self) -> None:
        """Clear the active image's annotations only."""
        entry = self.active_entry
        if entry is not None:
            entry.surface.clear()

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export(self, index: int) -> ExportResult:
        """
        Export one image.

        Raises:
            ImageDecodeError: If the entry's source never decoded
            ImageEncodeError: If compositing or encoding fails
        """
        entry = self.get_entry(index)
        entry.ensure_ready()
        result = export_image(entry.source, entry.filters, entry.surface, entry.layout)
        result.index = index
        return result

    def export_active(self) -> ExportResult:
        self._require_active()
        return self.export(self._active_index)

    def export_all(self, use_threading: bool = False, max_workers: Optional[int] = None) -> List[ExportResult]:
        """
        Export every image, in session order.

        A failing image yields a not-applied ExportResult carrying its
        original bytes (or empty bytes if it never decoded); the others are
        unaffected. With ``use_threading`` each worker receives its own
        snapshot of the entry's surface and filters.

        Returns:
            One ExportResult per entry
        """
        results: List[Optional[ExportResult]] = [None] * len(self._entries)

        if use_threading and len(self._entries) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures: Dict[concurrent.futures.Future, int] = {}
                for index, entry in enumerate(self._entries):
                    if not entry.is_ready:
                        results[index] = self._failed_result(index, entry, ImageDecodeError(entry.decode_error))
                        continue
                    future = executor.submit(
                        export_image,
                        entry.source,
                        entry.filters.copy(),
                        entry.surface.snapshot(),
                        entry.layout,
                    )
                    futures[future] = index

                for future in concurrent.futures.as_completed(futures):
                    index = futures[future]
                    try:
                        result = future.result()
                        result.index = index
                        results[index] = result
                    except ImageEditError as e:
                        results[index] = self._failed_result(index, self._entries[index], e)
        else:
            for index, entry in enumerate(self._entries):
                try:
                    results[index] = self.export(index)
                except ImageEditError as e:
                    results[index] = self._failed_result(index, entry, e)

        applied = sum(1 for r in results if r is not None and r.applied)
        logger.info(f"Exported {applied}/{len(results)} image(s)")
        return [r for r in results if r is not None]

    @staticmethod
    def _failed_result(index: int, entry: SessionEntry, error: Exception) -> ExportResult:
        logger.warning(f"Export of image {index} failed: {error}")
        if entry.source is None:
            return ExportResult(data=b"", mime_type="", applied=False, error=str(error), index=index)
        return ExportResult.fallback(entry.source, error, index)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def save_filters_to(self, path: Path) -> Path:
        """Write every entry's filters to an edit state file."""
        from OA_Libs.SessionLib.edit_state_store import save_edit_state

        return save_edit_state(path, self)

    def load_filters_from(self, path: Path) -> int:
        """
        Apply filters saved by save_filters_to, matched by position.

        Returns:
            Number of entries updated
        """
        from OA_Libs.SessionLib.edit_state_store import load_edit_state

        state = load_edit_state(path)
        updated = 0
        for index, filters in enumerate(state["filters"][: len(self._entries)]):
            self.update_filters(index, clamp_filters(filters))
            updated += 1
        if self._entries:
            self._active_index = max(0, min(state["active_index"], len(self._entries) - 1))
        return updated

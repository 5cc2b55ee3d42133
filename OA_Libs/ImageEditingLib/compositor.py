"""
Annotation Compositor and Exporter.

Flattens a filtered base image and its annotation surface into one PNG:

1. Rotate the source and apply the filter chain.
2. If the surface holds no text and no visible pixel, return the base alone.
3. Otherwise crop the surface to the displayed image rectangle, scale the
   crop to the base size and alpha-composite it over the base.
4. Encode losslessly.

Example:
    >>> source = SourceImage.from_path("photo.png")
    >>> layout = compute_layout(source.width, source.height, 0, 800, 600)
    >>> surface = AnnotationSurface(800, 600)
    >>> result = export_image(source, FilterParameters(sepia=True), surface, layout)
    >>> result.mime_type
    'image/png'
"""

from typing import Any, Optional
import logging

from PIL import Image

from OA_Libs.constants import OUTPUT_MIME_TYPE, SURFACE_MODE
from OA_Libs.AnnotationLib.annotation_surface import AnnotationSurface
from OA_Libs.ImageEditingLib.filter_model import FilterParameters
from OA_Libs.ImageEditingLib.filter_ops import (
    FilterEffectRegistry,
    apply_filter_chain,
    rotate_image,
)
from OA_Libs.ImageEditingLib.geometry import LayoutMetrics
from OA_Libs.ImageEditingLib.image_models import (
    ExportResult,
    ImageEncodeError,
    SourceImage,
    encode_png,
)

logger = logging.getLogger(__name__)


def _as_pil(source: Any) -> Any:
    if isinstance(source, SourceImage):
        return source.image
    if not hasattr(source, "convert"):
        raise TypeError(f"Expected SourceImage or PIL Image, got {type(source)}")
    return source


class AnnotationCompositor:
    """Handles flattening an annotation raster onto a base image."""

    @staticmethod
    def crop_to_layout(raster: Any, layout: Optional[LayoutMetrics]) -> Any:
        """
        Crop the annotation raster to the displayed image rectangle.

        Strokes in the letterbox margins are discarded. A missing or invalid
        layout (no layout pass yet) returns the whole raster instead of an
        empty crop.

        Args:
            raster: RGBA PIL Image covering the container
            layout: LayoutMetrics from the last layout pass

        Returns:
            RGBA PIL Image
        """
        if layout is None or not layout.is_valid:
            logger.warning("Layout metrics not available, exporting full annotation surface")
            return raster.copy()

        left, top, right, bottom = layout.crop_box()
        left = max(0, min(left, raster.width - 1))
        top = max(0, min(top, raster.height - 1))
        right = max(left + 1, min(right, raster.width))
        bottom = max(top + 1, min(bottom, raster.height))
        return raster.crop((left, top, right, bottom))

    @staticmethod
    def composite(base_image: Any, overlay: Any) -> Any:
        """
        Alpha-composite ``overlay`` over ``base_image``.

        The overlay is scaled to the base size when they differ.

        Returns:
            Composited RGBA PIL Image
        """
        if not hasattr(base_image, "mode"):
            raise TypeError(f"Expected PIL Image for base, got {type(base_image)}")
        if not hasattr(overlay, "convert"):
            raise TypeError(f"Expected PIL Image for overlay, got {type(overlay)}")

        base = base_image.convert(SURFACE_MODE)
        overlay = overlay.convert(SURFACE_MODE)

        if base.size != overlay.size:
            overlay = overlay.resize(base.size, Image.Resampling.LANCZOS)

        return Image.alpha_composite(base, overlay)


def render_filtered_base(
    source: Any,
    filters: FilterParameters,
    registry: Optional[FilterEffectRegistry] = None,
) -> Any:
    """
    Render the source with rotation and then the filter chain applied.

    Args:
        source: SourceImage or PIL Image
        filters: Filter parameters
        registry: Effect registry (default: global registry)

    Returns:
        RGBA PIL Image
    """
    rotated = rotate_image(_as_pil(source).convert(SURFACE_MODE), filters.rotation)
    return apply_filter_chain(rotated, filters, registry)


def flatten_image(
    source: Any,
    filters: FilterParameters,
    surface: Optional[AnnotationSurface],
    layout: Optional[LayoutMetrics],
    registry: Optional[FilterEffectRegistry] = None,
) -> Any:
    """Produce the flattened RGBA image without encoding it."""
    base = render_filtered_base(source, filters, registry)

    if surface is None or not surface.has_content():
        return base

    overlay = AnnotationCompositor.crop_to_layout(surface.raster, layout)
    return AnnotationCompositor.composite(base, overlay)


def export_image(
    source: Any,
    filters: FilterParameters,
    surface: Optional[AnnotationSurface],
    layout: Optional[LayoutMetrics],
    registry: Optional[FilterEffectRegistry] = None,
) -> ExportResult:
    """
    Flatten and encode one image.

    Args:
        source: SourceImage or PIL Image
        filters: Filter parameters to apply (read, never modified)
        surface: Annotation surface of the image, or None
        layout: LayoutMetrics of the last layout pass, or None
        registry: Effect registry (default: global registry)

    Returns:
        ExportResult with PNG bytes and a copy of the applied filters

    Raises:
        ImageEncodeError: If compositing or encoding fails
    """
    try:
        flattened = flatten_image(source, filters, surface, layout, registry)
    except (OSError, ValueError, MemoryError) as e:
        raise ImageEncodeError(f"Failed to composite image: {str(e)}") from e

    data = encode_png(flattened)
    return ExportResult(
        data=data,
        mime_type=OUTPUT_MIME_TYPE,
        width=flattened.width,
        height=flattened.height,
        filters=filters.copy(),
    )

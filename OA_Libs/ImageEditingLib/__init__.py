"""
ImageEditingLib - Filter, geometry and export functionality

This module provides the filter model and its pixel operations, the
letterbox layout resolver, image models and the compositor/exporter.
"""

from OA_Libs.ImageEditingLib.filter_model import (
    FilterDescriptor,
    FilterParameters,
    clamp_filters,
    default_filters,
    filter_chain_css,
    render_filter_chain,
    rotate_clockwise,
)
from OA_Libs.ImageEditingLib.filter_ops import (
    FilterEffectRegistry,
    apply_filter_chain,
    get_default_registry,
    rotate_image,
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
    ImageEncodeError,
    SourceImage,
)
from OA_Libs.ImageEditingLib.compositor import (
    AnnotationCompositor,
    export_image,
    flatten_image,
    render_filtered_base,
)

__all__ = [
    "FilterDescriptor",
    "FilterParameters",
    "clamp_filters",
    "default_filters",
    "filter_chain_css",
    "render_filter_chain",
    "rotate_clockwise",
    "FilterEffectRegistry",
    "apply_filter_chain",
    "get_default_registry",
    "rotate_image",
    "LayoutMetrics",
    "compute_layout",
    "map_pointer_to_surface",
    "ExportResult",
    "ImageDecodeError",
    "ImageEditError",
    "ImageEncodeError",
    "SourceImage",
    "AnnotationCompositor",
    "export_image",
    "flatten_image",
    "render_filtered_base",
]

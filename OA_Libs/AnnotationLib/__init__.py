"""
AnnotationLib - Annotation drawing

This module provides the per-image annotation surface and the raster
drawing primitives it is built on.
"""

from OA_Libs.AnnotationLib.annotation_surface import (
    AnnotationSurface,
    DrawingStyle,
    SurfaceState,
    TextAnnotation,
    Tool,
)
from OA_Libs.AnnotationLib.drawing_ops import (
    arrow_head_points,
    draw_arrow,
    draw_circle,
    draw_rectangle,
    draw_segment,
    draw_text,
)

__all__ = [
    "AnnotationSurface",
    "DrawingStyle",
    "SurfaceState",
    "TextAnnotation",
    "Tool",
    "arrow_head_points",
    "draw_arrow",
    "draw_circle",
    "draw_rectangle",
    "draw_segment",
    "draw_text",
]

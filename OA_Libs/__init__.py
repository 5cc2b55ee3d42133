"""
OA_Libs - Open Annotate Library Modules

This package contains the image annotation and filter compositor,
organized into specialized sub-packages:

- ImageEditingLib: Filter model, filter operations, layout geometry and export
- AnnotationLib: Annotation surface and raster drawing primitives
- SessionLib: Multi-image editing session and edit state persistence
"""

__version__ = "0.1.0"

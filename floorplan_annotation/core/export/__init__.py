"""
Export module - bakes annotations onto a flattened copy of the image.

Rendering works in the export raster's own pixel space and never looks
at the viewport.
"""

from .compositor import (
    burn_footer,
    composite_markers,
    composite_regions,
    export_markers,
    export_regions,
    footer_text,
    marker_radius,
)
from .raster import check_capacity, encode_png, fit_within, load_raster

__all__ = [
    "burn_footer",
    "check_capacity",
    "composite_markers",
    "composite_regions",
    "encode_png",
    "export_markers",
    "export_regions",
    "fit_within",
    "footer_text",
    "load_raster",
    "marker_radius",
]

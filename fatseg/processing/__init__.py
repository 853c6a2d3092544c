"""
Processing helpers for detection results.

Provides:
- Tile-local to slide coordinate conversion
- Per-globule measurements for export
"""

from .coordinates import (
    polygon_to_global,
    polygon_to_global_list,
    polygon_area,
    polygon_centroid,
    polygon_to_dict,
)

__all__ = [
    "polygon_to_global",
    "polygon_to_global_list",
    "polygon_area",
    "polygon_centroid",
    "polygon_to_dict",
]

"""
Preprocessing for the globule pipeline.

Provides:
- HSV colour segmentation of RGB tiles
"""

from .color import segment_by_color, to_uint8

__all__ = [
    "segment_by_color",
    "to_uint8",
]

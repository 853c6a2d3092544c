"""
Detection modules for the globule pipeline.

Provides:
- Polygon extraction from masks and rasterization back to masks
- Shape metrics and globule classification
- Watershed separation of overlapping globules
- Per-tile globule detection and overview tissue detection
"""

from .contours import extract_contours, draw_contours, polygon_pixel_mask
from .shape_metrics import (
    ShapeMetrics,
    compute_elongation,
    compute_solidity,
    compute_equivalent_diameter,
    compute_shape_metrics,
)
from .classifier import (
    GlobuleClass,
    GlobuleClassification,
    classify_globule,
    classify_polygon,
    classify_globules,
)
from .separation import separate_overlapping_globules
from .globules import detect_globules, detect_globules_in_tile
from .tissue import detect_tissue

__all__ = [
    "extract_contours",
    "draw_contours",
    "polygon_pixel_mask",
    "ShapeMetrics",
    "compute_elongation",
    "compute_solidity",
    "compute_equivalent_diameter",
    "compute_shape_metrics",
    "GlobuleClass",
    "GlobuleClassification",
    "classify_globule",
    "classify_polygon",
    "classify_globules",
    "separate_overlapping_globules",
    "detect_globules",
    "detect_globules_in_tile",
    "detect_tissue",
]

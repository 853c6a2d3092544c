"""
Fat globule detection for liver histology slides.

Finds fat globules (white, round vacuoles) in RGB tiles, splits clusters of
touching globules with a watershed, and outlines tissue on low-resolution
overviews.

Usage:
    from fatseg.detection import detect_globules, detect_globules_in_tile, detect_tissue
    from fatseg.preprocessing import segment_by_color
    from fatseg.processing import polygon_to_global, polygon_to_dict
    from fatseg.utils import get_logger, setup_logging, load_config
"""

# Version
__version__ = "0.1.0"

# Individual modules should be imported explicitly:
#   from fatseg.detection.globules import detect_globules
#   from fatseg.utils.logging import get_logger

__all__ = [
    "detection",
    "processing",
    "preprocessing",
    "utils",
]

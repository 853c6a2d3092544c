"""
Fat globule detection on one tile.

Pipeline:
    1. extract_contours: binary mask -> candidate polygons
    2. classify_globules: isolated / overlapping / rejected
    3. separate_overlapping_globules: watershed split of the overlapping ones
    4. classify_globules again on the separated pieces

The result is the isolated globules of both passes.  Pieces that are still
overlapping after the split are dropped; there is exactly one separation
pass.

Usage:
    from fatseg.detection.globules import detect_globules_in_tile
    from fatseg.utils.schemas import GlobuleDetectionParameters

    params = GlobuleDetectionParameters(pixel_size_um=0.5)
    polygons = detect_globules_in_tile(rgb_tile, params)
"""

import logging
from typing import List

import numpy as np

from fatseg.detection.classifier import classify_globules
from fatseg.detection.contours import extract_contours
from fatseg.detection.separation import separate_overlapping_globules
from fatseg.preprocessing.color import segment_by_color
from fatseg.utils.logging import get_logger, ProcessingTimer
from fatseg.utils.mask_cleanup import check_mask, fill_holes
from fatseg.utils.schemas import GlobuleDetectionParameters

logger = get_logger(__name__)


def detect_globules(mask: np.ndarray, params: GlobuleDetectionParameters) -> List[np.ndarray]:
    """
    Detect fat globules in a binary mask.

    Args:
        mask: Binary uint8 mask of candidate globule pixels (not modified)
        params: Detection parameters

    Returns:
        Pixel-corner polygons of the detected globules in the mask's
        coordinates: first-pass isolated globules followed by the isolated
        pieces of the separated clusters
    """
    check_mask(mask)
    height, width = mask.shape

    with ProcessingTimer(logger, f"Globule detection on {width}x{height} mask", level=logging.DEBUG):
        first_pass = classify_globules(extract_contours(mask), params)
        globules = list(first_pass.isolated)

        if first_pass.overlapping:
            pieces = separate_overlapping_globules(first_pass.overlapping, height, width)
            second_pass = classify_globules(pieces, params)
            globules.extend(second_pass.isolated)
            logger.debug(
                f"Separation: {len(first_pass.overlapping)} clusters -> {len(pieces)} pieces, "
                f"{len(second_pass.isolated)} isolated"
            )

    return globules


def detect_globules_in_tile(image: np.ndarray, params: GlobuleDetectionParameters) -> List[np.ndarray]:
    """
    Detect fat globules in an RGB tile.

    Pixels inside the parameters' HSV bounds are candidate globules; holes in
    the candidate mask are filled before detection.

    Args:
        image: RGB image (H, W, 3)
        params: Detection parameters

    Returns:
        Tile-local pixel-corner polygons, see detect_globules()
    """
    mask = segment_by_color(image, params.lower_bound, params.upper_bound)
    fill_holes(mask)
    return detect_globules(mask, params)

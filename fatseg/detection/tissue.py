"""
Tissue detection on a low-resolution overview of a slide.

The slide background is white, so background pixels are found with an HSV
range and tissue is what remains.  Small background-coloured regions inside
the tissue (fat, lumen) are absorbed into the tissue, and specks of tissue
smaller than the minimum tissue area are discarded.
"""

from typing import List

import numpy as np

from fatseg.detection.contours import extract_contours
from fatseg.preprocessing.color import segment_by_color
from fatseg.utils.logging import get_logger
from fatseg.utils.mask_cleanup import add_border, fill_holes, invert_mask, remove_border
from fatseg.utils.schemas import TissueDetectionParameters

logger = get_logger(__name__)


def detect_tissue(image: np.ndarray, params: TissueDetectionParameters) -> List[np.ndarray]:
    """
    Detect tissue regions in an overview image.

    Steps:
        1. Background mask by HSV range
        2. Foreground frame, so background touching the image edge forms one
           region enclosing all tissue
        3. Fill holes of the background smaller than min_tissue_area_um2,
           i.e. remove small tissue specks
        4. Drop the frame and invert: tissue becomes foreground
        5. Fill every hole of the tissue

    Args:
        image: RGB image (H, W, 3) read at params.downsample
        params: Tissue detection parameters

    Returns:
        Pixel-corner polygons in the coordinates of the downsampled image
    """
    background = segment_by_color(image, params.lower_bound, params.upper_bound)

    framed = add_border(background)
    fill_holes(framed, max_hole_area=params.min_tissue_area_um2, pixel_size_um=params.effective_pixel_size_um)

    tissue = invert_mask(remove_border(framed))
    fill_holes(tissue)

    polygons = extract_contours(tissue)
    logger.debug(f"Detected {len(polygons)} tissue regions")
    return polygons

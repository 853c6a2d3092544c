"""
Colour segmentation in HSV space.

Images are RGB (as read from slides) and converted with OpenCV's 8-bit HSV
convention: hue in degrees / 2 (0-179), saturation and value 0-255.
"""

from typing import Sequence, Union

import cv2
import numpy as np

from fatseg.utils.logging import get_logger
from fatseg.utils.schemas import HsvBounds

logger = get_logger(__name__)

Bound = Union[HsvBounds, Sequence[int]]


def _bound_array(bound: Bound) -> np.ndarray:
    if not isinstance(bound, HsvBounds):
        bound = HsvBounds.model_validate(list(bound))
    return np.array(bound.to_tuple(), dtype=np.uint8)


def to_uint8(image: np.ndarray) -> np.ndarray:
    """Clip an image to [0, 255] and cast it to uint8 (no copy if already uint8)."""
    if image.dtype == np.uint8:
        return image
    logger.debug(f"Converting {image.dtype} image to uint8")
    return np.clip(image, 0, 255).astype(np.uint8)


def segment_by_color(image: np.ndarray, lower: Bound, upper: Bound) -> np.ndarray:
    """
    Binary mask of the pixels whose HSV colour lies inside [lower, upper].

    Args:
        image: RGB image (H, W, 3)
        lower: Inclusive lower HSV bound
        upper: Inclusive upper HSV bound

    Returns:
        uint8 mask, 255 where the pixel is inside the bounds

    Raises:
        ValueError: If image is not an (H, W, 3) array or a bound is invalid
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an RGB image of shape (H, W, 3), got {image.shape}")

    hsv = cv2.cvtColor(to_uint8(image), cv2.COLOR_RGB2HSV)
    return cv2.inRange(hsv, _bound_array(lower), _bound_array(upper))

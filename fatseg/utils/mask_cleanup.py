"""
Mask cleanup utilities.

Binary masks in this package are 2D uint8 arrays with foreground 255 and
background 0.  The functions here mutate the mask in place (and return it for
chaining) so that per-tile processing does not allocate a new full-size
buffer for every step.

Usage:
    from fatseg.utils.mask_cleanup import fill_holes

    # Fill every hole of a globule mask
    fill_holes(mask)

    # Only fill holes smaller than 500 um^2 at 0.5 um/px
    fill_holes(mask, max_hole_area=500, pixel_size_um=0.5)
"""

from typing import Optional

import cv2
import numpy as np

from fatseg.utils.logging import get_logger

logger = get_logger(__name__)

FOREGROUND = 255
BACKGROUND = 0


def check_mask(mask: np.ndarray) -> None:
    """
    Raise if mask is not a 2D uint8 array.

    Raises:
        ValueError: If the mask has the wrong dtype or dimensionality
    """
    if not isinstance(mask, np.ndarray):
        raise ValueError(f"mask must be a numpy array, got {type(mask).__name__}")
    if mask.ndim != 2:
        raise ValueError(f"mask must be 2D, got shape {mask.shape}")
    if mask.dtype != np.uint8:
        raise ValueError(f"mask must have dtype uint8, got {mask.dtype}")


def fill_holes(
    mask: np.ndarray,
    max_hole_area: Optional[float] = None,
    pixel_size_um: float = 1.0,
) -> np.ndarray:
    """
    Fill enclosed holes of a binary mask with foreground pixels.

    Uses the two-level contour hierarchy (outer boundaries and the holes
    directly inside them).  Holes whose area, converted with pixel_size_um,
    is below max_hole_area are painted foreground.

    Args:
        mask: Binary uint8 mask (modified in place)
        max_hole_area: Largest hole area to fill, in squared units of
            pixel_size_um. None fills every hole.
        pixel_size_um: Size of a mask pixel (default 1.0, i.e. areas in pixels)

    Returns:
        The same mask, for chaining
    """
    check_mask(mask)

    if not mask.any():
        return mask

    contours, hierarchy = cv2.findContours(mask, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_SIMPLE)
    if hierarchy is None:
        return mask

    n_filled = 0
    for contour, (_next, _prev, _child, parent) in zip(contours, hierarchy[0]):
        if parent < 0:
            continue

        try:
            if max_hole_area is not None:
                hole_area = cv2.contourArea(contour) * pixel_size_um * pixel_size_um
                if hole_area >= max_hole_area:
                    continue

            cv2.drawContours(mask, [contour], 0, FOREGROUND, thickness=cv2.FILLED, lineType=cv2.LINE_8)
            n_filled += 1
        except cv2.error as e:
            logger.warning(f"Could not fill hole with {len(contour)} contour points: {e}")

    if n_filled:
        logger.debug(f"Filled {n_filled} holes")

    return mask


def add_border(mask: np.ndarray, value: int = FOREGROUND) -> np.ndarray:
    """
    Return a copy of mask surrounded by a one-pixel constant border.

    A foreground border joins everything touching the image edge into one
    component, so that regions cut by the edge are seen as enclosed holes.
    """
    check_mask(mask)
    return cv2.copyMakeBorder(mask, 1, 1, 1, 1, cv2.BORDER_CONSTANT, value=value)


def remove_border(mask: np.ndarray) -> np.ndarray:
    """Return a copy of mask without its outermost one-pixel frame."""
    check_mask(mask)
    if mask.shape[0] < 2 or mask.shape[1] < 2:
        raise ValueError(f"mask of shape {mask.shape} has no border to remove")
    return mask[1:-1, 1:-1].copy()


def invert_mask(mask: np.ndarray) -> np.ndarray:
    """Swap foreground and background in place."""
    check_mask(mask)
    cv2.bitwise_not(mask, dst=mask)
    return mask

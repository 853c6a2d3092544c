"""
Polygon extraction from binary masks and rasterization back to masks.

Convention: polygons are (N, 2) int32 arrays of [x, y] vertices lying on
pixel corners.  Pixel (col=i, row=j) covers the square [i, i+1) x [j, j+1),
so a single foreground pixel at (3, 5) is the polygon
[[3, 5], [4, 5], [4, 6], [3, 6]].  This is the ImageJ ROI convention and
differs from cv2.findContours, whose vertices sit on pixel centers.

Corner polygons are traced by running cv2.findContours on a 2x nearest
upsampled copy of the mask: every boundary pixel u of the upsampled image
maps to the corner (u + 1) // 2.  Drawing uses the inverse trick
(vertices moved to 2x - 1 on a 2x canvas, filled, then sampled back), so
extract -> draw -> extract reproduces the same pixel set.

Usage:
    from fatseg.detection.contours import extract_contours, draw_contours

    polygons = extract_contours(mask)

    canvas = np.zeros_like(mask)
    draw_contours(canvas, polygons)
"""

from typing import List, Sequence

import cv2
import numpy as np

from fatseg.utils.logging import get_logger
from fatseg.utils.mask_cleanup import FOREGROUND, check_mask

logger = get_logger(__name__)


def _to_pixel_corners(points: np.ndarray) -> np.ndarray:
    """
    Map a contour traced on the 2x upsampled mask to pixel-corner vertices.

    Consecutive duplicates and the middle points of straight runs are
    dropped, leaving one vertex per corner of the staircase outline.

    Args:
        points: (N, 2) boundary pixel coordinates on the upsampled mask

    Returns:
        (M, 2) int32 corner polygon, empty if fewer than 3 corners remain
    """
    corners = (points.astype(np.int32) + 1) // 2

    # Duplicates, including the wrap-around from last to first point
    keep = np.any(corners != np.roll(corners, 1, axis=0), axis=1)
    corners = corners[keep]
    if len(corners) < 3:
        return np.empty((0, 2), dtype=np.int32)

    incoming = corners - np.roll(corners, 1, axis=0)
    outgoing = np.roll(corners, -1, axis=0) - corners
    turn = incoming[:, 0] * outgoing[:, 1] - incoming[:, 1] * outgoing[:, 0]
    corners = corners[turn != 0]

    if len(corners) < 3:
        return np.empty((0, 2), dtype=np.int32)
    return np.ascontiguousarray(corners, dtype=np.int32)


def extract_contours(mask: np.ndarray) -> List[np.ndarray]:
    """
    Convert a binary mask into closed pixel-corner polygons.

    Every boundary becomes its own polygon: the outer boundary of each
    foreground component and the boundary of each hole (and of islands
    inside holes).  No polygon carries holes.  Coordinates are in the mask's
    own pixel grid.

    Polygons are ordered by the raster position (row, then column) of the
    first boundary pixel met when scanning the mask, so identical masks
    always give identical lists.

    Args:
        mask: Binary uint8 mask (non-zero = foreground). Not modified.

    Returns:
        List of (N, 2) int32 polygons of [x, y] corners
    """
    check_mask(mask)

    if not mask.any():
        return []

    upsampled = np.repeat(np.repeat(mask, 2, axis=0), 2, axis=1)
    contours, _ = cv2.findContours(upsampled, cv2.RETR_LIST, cv2.CHAIN_APPROX_NONE)

    keyed = []
    for contour in contours:
        points = contour.reshape(-1, 2)
        polygon = _to_pixel_corners(points)
        if len(polygon) == 0:
            logger.debug(f"Dropped degenerate boundary with {len(points)} points")
            continue
        # findContours starts each border at the first pixel met in raster order
        start_x, start_y = points[0]
        keyed.append(((int(start_y), int(start_x)), polygon))

    keyed.sort(key=lambda item: item[0])
    return [polygon for _, polygon in keyed]


def draw_contours(mask: np.ndarray, polygons: Sequence[np.ndarray]) -> np.ndarray:
    """
    Fill the interiors of pixel-corner polygons into a mask.

    The mask is upsampled 2x (nearest), each polygon's vertices are moved to
    (2x - 1, 2y - 1), the polygons are filled, and the result is sampled back
    with nearest neighbour.  cv2 fills polygons including their edges; at 2x
    with the shift, exactly the pixels enclosed by the corner polygon are
    sampled.  Existing foreground is kept.

    Args:
        mask: Binary uint8 mask (modified in place)
        polygons: Pixel-corner polygons as returned by extract_contours()

    Returns:
        The same mask, for chaining
    """
    check_mask(mask)

    if len(polygons) == 0:
        return mask

    height, width = mask.shape
    upsampled = cv2.resize(mask, (width * 2, height * 2), interpolation=cv2.INTER_NEAREST)

    for polygon in polygons:
        # Shifted copy; the caller's polygon is left untouched
        shifted = np.asarray(polygon, dtype=np.int32).reshape(-1, 1, 2) * 2 - 1
        cv2.drawContours(upsampled, [shifted], -1, FOREGROUND, thickness=cv2.FILLED, lineType=cv2.LINE_8)

    mask[:] = cv2.resize(upsampled, (width, height), interpolation=cv2.INTER_NEAREST)
    return mask


def polygon_pixel_mask(polygon: np.ndarray, shape: Sequence[int]) -> np.ndarray:
    """Rasterize a single polygon onto a new mask of the given (height, width)."""
    mask = np.zeros(tuple(shape), dtype=np.uint8)
    return draw_contours(mask, [polygon])

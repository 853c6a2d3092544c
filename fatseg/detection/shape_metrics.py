"""
Shape metrics of globule polygons.

All metrics are computed from the polygon vertices (Green's theorem moments,
convex hull, minimal enclosing circle), never from a filled raster, so the
cost is linear in the number of vertices.

A degenerate polygon (fewer than three vertices, zero area, collinear points)
never raises: the affected metric falls back to 0.0 and a warning is logged.
A zero metric fails every classification floor, so such polygons end up
rejected instead of interrupting the batch they belong to.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

import cv2
import numpy as np

from fatseg.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShapeMetrics:
    """
    Shape descriptors of one polygon.

    Attributes:
        elongation: Ratio of the minor to the major second moment; 1 for a
            disc, towards 0 for elongated shapes
        solidity: Polygon area / convex hull area, in [0, 1]
        diameter_um: Diameter of the minimal enclosing circle in micrometers
    """
    elongation: float
    solidity: float
    diameter_um: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _as_points(polygon) -> np.ndarray:
    return np.asarray(polygon, dtype=np.int32).reshape(-1, 2)


def compute_elongation(polygon) -> float:
    """
    Moment-based elongation of a polygon.

    With mu20, mu02, mu11 the second order central moments,
    x = mu20 + mu02 and y = sqrt(4 mu11^2 + (mu20 - mu02)^2), the elongation
    is (x - y) / (x + y), the ratio of the principal moments.

    Args:
        polygon: (N, 2) array of [x, y] vertices

    Returns:
        Elongation, or 0.0 for degenerate polygons
    """
    try:
        points = _as_points(polygon)
        if len(points) < 3:
            logger.warning(f"Cannot compute elongation of a polygon with {len(points)} points")
            return 0.0

        moments = cv2.moments(points)
        x = moments['mu20'] + moments['mu02']
        y = np.sqrt(4 * moments['mu11'] ** 2 + (moments['mu20'] - moments['mu02']) ** 2)

        if x + y <= 0:
            logger.warning("Cannot compute elongation of a polygon with zero second moments")
            return 0.0

        return float((x - y) / (x + y))
    except (cv2.error, ValueError) as e:
        logger.warning(f"Error when computing elongation: {e}")
        return 0.0


def compute_solidity(polygon) -> float:
    """
    Solidity of a polygon: its area divided by the area of its convex hull.

    Args:
        polygon: (N, 2) array of [x, y] vertices

    Returns:
        Solidity in [0, 1], or 0.0 for degenerate polygons
    """
    try:
        points = _as_points(polygon)
        if len(points) < 3:
            logger.warning(f"Cannot compute solidity of a polygon with {len(points)} points")
            return 0.0

        hull = cv2.convexHull(points)
        hull_area = cv2.contourArea(hull)
        if hull_area <= 0:
            logger.warning("Cannot compute solidity of a polygon with a zero-area convex hull")
            return 0.0

        return float(cv2.contourArea(points) / hull_area)
    except (cv2.error, ValueError) as e:
        logger.warning(f"Error when computing solidity: {e}")
        return 0.0


def compute_equivalent_diameter(polygon, pixel_size_um: float = 1.0) -> float:
    """
    Diameter of the minimal enclosing circle, in micrometers.

    Args:
        polygon: (N, 2) array of [x, y] vertices
        pixel_size_um: Micrometers per pixel

    Returns:
        2 * radius * pixel_size_um, or 0.0 if the circle cannot be computed
    """
    try:
        points = _as_points(polygon).astype(np.float32)
        _, radius = cv2.minEnclosingCircle(points)
    except (cv2.error, ValueError) as e:
        logger.warning(f"Error when computing minimal enclosing circle: {e}")
        radius = 0.0

    return float(2 * radius * pixel_size_um)


def compute_shape_metrics(polygon, pixel_size_um: float = 1.0) -> ShapeMetrics:
    """Compute elongation, solidity and diameter of one polygon."""
    return ShapeMetrics(
        elongation=compute_elongation(polygon),
        solidity=compute_solidity(polygon),
        diameter_um=compute_equivalent_diameter(polygon, pixel_size_um),
    )

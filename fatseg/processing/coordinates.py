"""
Coordinate handling for globule polygons.

Convention: All coordinates are [x, y] (horizontal, vertical).

Coordinate System:
    - Origin: Top-left corner (0, 0)
    - X-axis: Horizontal, increases to the right (columns)
    - Y-axis: Vertical, increases downward (rows)
    - Polygon vertices lie on pixel corners (see fatseg.detection.contours)

Detection runs on tiles that may have been read at a downsample, so the
polygons it returns are tile-local.  polygon_to_global() maps them to
full-resolution slide coordinates.
"""

from typing import Any, Dict, List, Sequence

import cv2
import numpy as np

from fatseg.detection.shape_metrics import compute_shape_metrics


def polygon_to_global(
    polygon: np.ndarray,
    tile_origin: Sequence[float],
    downsample: float = 1.0,
) -> np.ndarray:
    """
    Convert a tile-local polygon to full-resolution slide coordinates.

    Args:
        polygon: (N, 2) array of [x, y] vertices in tile pixels
        tile_origin: (x, y) of the tile's top-left corner in slide pixels
        downsample: Downsample the tile was read at

    Returns:
        (N, 2) float64 array of [x, y] slide coordinates
    """
    if downsample <= 0:
        raise ValueError(f"downsample must be positive, got {downsample}")
    points = np.asarray(polygon, dtype=np.float64).reshape(-1, 2)
    return points * downsample + np.asarray(tile_origin, dtype=np.float64)


def polygon_to_global_list(
    polygons: Sequence[np.ndarray],
    tile_origin: Sequence[float],
    downsample: float = 1.0,
) -> List[np.ndarray]:
    """Apply polygon_to_global() to every polygon of a tile."""
    return [polygon_to_global(p, tile_origin, downsample) for p in polygons]


def polygon_area(polygon: np.ndarray) -> float:
    """Area enclosed by a polygon, in squared polygon units."""
    points = np.asarray(polygon, dtype=np.float32).reshape(-1, 2)
    if len(points) < 3:
        return 0.0
    return float(cv2.contourArea(points))


def polygon_centroid(polygon: np.ndarray) -> List[float]:
    """
    Area centroid of a polygon as [x, y].

    Falls back to the vertex mean for zero-area polygons.
    """
    points = np.asarray(polygon, dtype=np.float32).reshape(-1, 2)
    if len(points) == 0:
        return [0.0, 0.0]
    moments = cv2.moments(points) if len(points) >= 3 else {'m00': 0}
    if moments['m00'] == 0:
        mean = points.mean(axis=0)
        return [float(mean[0]), float(mean[1])]
    return [float(moments['m10'] / moments['m00']), float(moments['m01'] / moments['m00'])]


def polygon_to_dict(polygon: np.ndarray, pixel_size_um: float = 1.0) -> Dict[str, Any]:
    """
    Describe a polygon with the measurements attached to exported globules.

    Args:
        polygon: (N, 2) array of [x, y] vertices, in pixels of pixel_size_um
        pixel_size_um: Micrometers per pixel

    Returns:
        Dict with explicitly labeled fields:
            - area_px, area_um2
            - solidity, elongation, diameter_um
            - centroid_xy: [x, y] in pixels
            - contour: list of [x, y] vertices
    """
    metrics = compute_shape_metrics(polygon, pixel_size_um)
    area_px = polygon_area(polygon)

    return {
        'area_px': area_px,
        'area_um2': area_px * pixel_size_um * pixel_size_um,
        'solidity': metrics.solidity,
        'elongation': metrics.elongation,
        'diameter_um': metrics.diameter_um,
        'centroid_xy': polygon_centroid(polygon),
        'contour': np.asarray(polygon).reshape(-1, 2).tolist(),
    }

"""
Watershed separation of overlapping globules.

Clusters of touching globules are rasterized, and each connected cluster is
split along the necks of its Euclidean distance map.  Seeds are the domes of
the distance map that rise at least min_marker_depth above their saddles, one
seed per dome: a cluster of two discs yields two seeds, while the ripples and
the tied peak pixels along the ridge of a single digitized ellipse do not.
"""

from typing import List, Sequence

import numpy as np
from scipy import ndimage
from skimage.morphology import local_maxima, reconstruction
from skimage.segmentation import watershed

from fatseg.detection.contours import draw_contours, extract_contours
from fatseg.utils.logging import get_logger
from fatseg.utils.mask_cleanup import FOREGROUND

logger = get_logger(__name__)

# 8-connected structure for grouping maxima plateaus into single markers
_MARKER_STRUCTURE = np.ones((3, 3), dtype=bool)


def _watershed_markers(labels: np.ndarray, n_labels: int, distance: np.ndarray,
                       min_marker_depth: float) -> np.ndarray:
    """
    Seed image for the watershed.

    Reconstruction by dilation of (distance - depth) under distance turns
    every dome at least min_marker_depth deep into a single flat plateau at
    (peak - depth), while shallower domes merge into their neighbours; each
    plateau becomes one marker.  Components without any such dome (too thin
    to pass the depth) are seeded as a whole so that they survive the
    watershed unchanged.
    """
    seed = np.maximum(distance - min_marker_depth, 0)
    domes = reconstruction(seed, distance, method="dilation")
    plateaus = local_maxima(domes, connectivity=2) & (domes > 0)
    markers, n_markers = ndimage.label(plateaus, structure=_MARKER_STRUCTURE)

    seeded = np.unique(labels[markers > 0])
    unseeded = np.setdiff1d(np.arange(1, n_labels + 1), seeded)
    if len(unseeded):
        whole = np.isin(labels, unseeded)
        markers[whole] = labels[whole] + n_markers

    return markers


def separate_overlapping_globules(
    polygons: Sequence[np.ndarray],
    height: int,
    width: int,
    min_marker_depth: float = 2.0,
) -> List[np.ndarray]:
    """
    Split clusters of touching globules into individual polygons.

    Steps:
        1. Rasterize all polygons onto a zero (height, width) mask
        2. Label connected components (4-connectivity)
        3. Marker watershed on the negated distance transform, with
           one-pixel watershed lines left as background
        4. Extract the contours of each resulting region

    Args:
        polygons: Pixel-corner polygons of overlapping globules
        height: Height of the tile the polygons live in
        width: Width of the tile the polygons live in
        min_marker_depth: Minimum depth, in pixels, of a distance maximum to
            seed its own region

    Returns:
        Polygons of the separated regions, ordered by region label.  The
        regions do not share pixels and lie inside the union of the inputs.
    """
    if len(polygons) == 0:
        return []

    binary = np.zeros((height, width), dtype=np.uint8)
    draw_contours(binary, polygons)
    foreground = binary > 0

    labels, n_labels = ndimage.label(foreground)
    if n_labels == 0:
        return []

    distance = ndimage.distance_transform_edt(foreground)
    markers = _watershed_markers(labels, n_labels, distance, min_marker_depth)
    regions = watershed(-distance, markers, mask=foreground, watershed_line=True)

    del labels, distance, markers, foreground

    separated = []
    scratch = np.zeros_like(binary)
    for label, region_slice in enumerate(ndimage.find_objects(regions), start=1):
        if region_slice is None:
            continue

        y_slice, x_slice = region_slice
        inside = regions[region_slice] == label
        crop = scratch[region_slice]

        crop[inside] = FOREGROUND
        offset = np.array([x_slice.start, y_slice.start], dtype=np.int32)
        for polygon in extract_contours(crop):
            separated.append(polygon + offset)
        crop[inside] = 0

    logger.debug(f"Separated {len(polygons)} overlapping polygons into {len(separated)} regions")
    return separated

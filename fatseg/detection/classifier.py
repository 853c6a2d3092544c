"""
Globule classification by shape.

Each candidate polygon is measured (elongation, solidity, minimal enclosing
circle diameter) and put into one of three classes:

    ISOLATED     round and convex enough to be a single globule
    OVERLAPPING  looser floors; a cluster of touching globules worth splitting
    REJECTED     everything else (debris, vessels, degenerate outlines)

Rules are tried in that order and the first match wins.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence

import cv2
import numpy as np

from fatseg.detection.shape_metrics import ShapeMetrics, compute_shape_metrics
from fatseg.utils.logging import get_logger
from fatseg.utils.schemas import GlobuleDetectionParameters

logger = get_logger(__name__)


class GlobuleClass(Enum):
    ISOLATED = "isolated"
    OVERLAPPING = "overlapping"
    REJECTED = "rejected"


@dataclass
class GlobuleClassification:
    """Result of classifying a batch of polygons. Rejected polygons are only counted."""
    isolated: List[np.ndarray] = field(default_factory=list)
    overlapping: List[np.ndarray] = field(default_factory=list)
    rejected: int = 0

    @property
    def total(self) -> int:
        return len(self.isolated) + len(self.overlapping) + self.rejected


def classify_globule(metrics: ShapeMetrics, params: GlobuleDetectionParameters) -> GlobuleClass:
    """
    Classify one globule from its shape metrics.

    Args:
        metrics: Elongation, solidity and diameter of the polygon
        params: Detection thresholds

    Returns:
        The first matching GlobuleClass
    """
    if (metrics.elongation > params.min_isolated_elongation
            and metrics.solidity > params.min_isolated_solidity
            and params.min_diameter_um < metrics.diameter_um < params.max_diameter_um):
        return GlobuleClass.ISOLATED

    if (metrics.elongation > params.min_overlapping_elongation
            and metrics.solidity > params.min_overlapping_solidity
            and metrics.diameter_um > params.min_diameter_um):
        return GlobuleClass.OVERLAPPING

    return GlobuleClass.REJECTED


def classify_polygon(polygon: np.ndarray, params: GlobuleDetectionParameters) -> GlobuleClass:
    """Measure a polygon at params.pixel_size_um and classify it."""
    metrics = compute_shape_metrics(polygon, params.pixel_size_um)
    return classify_globule(metrics, params)


def classify_globules(
    polygons: Sequence[np.ndarray],
    params: GlobuleDetectionParameters,
) -> GlobuleClassification:
    """
    Split polygons into isolated and overlapping lists, dropping rejected ones.

    A polygon that cannot be measured is rejected; the rest of the batch is
    still classified.

    Args:
        polygons: Pixel-corner polygons
        params: Detection thresholds

    Returns:
        GlobuleClassification preserving the input order within each list
    """
    result = GlobuleClassification()

    for i, polygon in enumerate(polygons):
        try:
            label = classify_polygon(polygon, params)
        except (cv2.error, ValueError) as e:
            logger.warning(f"Rejecting polygon {i}: {e}")
            label = GlobuleClass.REJECTED

        if label is GlobuleClass.ISOLATED:
            result.isolated.append(polygon)
        elif label is GlobuleClass.OVERLAPPING:
            result.overlapping.append(polygon)
        else:
            result.rejected += 1

    logger.debug(
        f"Classified {len(polygons)} polygons: {len(result.isolated)} isolated, "
        f"{len(result.overlapping)} overlapping, {result.rejected} rejected"
    )
    return result

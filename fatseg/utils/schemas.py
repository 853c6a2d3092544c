"""
Parameter schemas for globule and tissue detection.

Uses Pydantic for validation with clear error messages.  All numeric bounds
are checked when a parameter object is constructed, so an invalid
configuration never reaches the pipeline.

Usage:
    from fatseg.utils.schemas import GlobuleDetectionParameters, HsvBounds

    params = GlobuleDetectionParameters(
        pixel_size_um=0.4942,
        lower_bound=HsvBounds(hue=0, saturation=0, value=200),
        upper_bound=[180, 25, 255],
    )
"""

from __future__ import annotations

from typing import Any, List, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


# OpenCV stores 8-bit hue as degrees / 2, i.e. 0-179.  180 is accepted as an
# inclusive upper bound so that "every hue" can be written as [0, 180].
HUE_MAX = 180
SATURATION_MAX = 255
VALUE_MAX = 255


# =============================================================================
# Base Types
# =============================================================================

class HsvBounds(BaseModel):
    """An inclusive HSV bound (hue, saturation, value) in OpenCV 8-bit units."""
    hue: int
    saturation: int
    value: int

    @model_validator(mode='before')
    @classmethod
    def from_sequence(cls, data: Any) -> Any:
        """Accept [hue, saturation, value] lists as found in config files."""
        if isinstance(data, (list, tuple)):
            if len(data) != 3:
                raise ValueError(f"HSV bound must have 3 elements, got {len(data)}")
            return {'hue': data[0], 'saturation': data[1], 'value': data[2]}
        return data

    @field_validator('hue')
    @classmethod
    def validate_hue(cls, v: int) -> int:
        if v < 0 or v > HUE_MAX:
            raise ValueError(f"The supplied hue ({v}) is not within the required range ([0, {HUE_MAX}])")
        return v

    @field_validator('saturation')
    @classmethod
    def validate_saturation(cls, v: int) -> int:
        if v < 0 or v > SATURATION_MAX:
            raise ValueError(
                f"The supplied saturation ({v}) is not within the required range ([0, {SATURATION_MAX}])"
            )
        return v

    @field_validator('value')
    @classmethod
    def validate_value(cls, v: int) -> int:
        if v < 0 or v > VALUE_MAX:
            raise ValueError(f"The supplied value ({v}) is not within the required range ([0, {VALUE_MAX}])")
        return v

    def to_tuple(self) -> Tuple[int, int, int]:
        return (self.hue, self.saturation, self.value)

    def to_list(self) -> List[int]:
        return [self.hue, self.saturation, self.value]

    class Config:
        frozen = True


def _check_bound_order(lower: HsvBounds, upper: HsvBounds) -> None:
    for channel in ('hue', 'saturation', 'value'):
        low, high = getattr(lower, channel), getattr(upper, channel)
        if low > high:
            raise ValueError(
                f"lower_bound.{channel} ({low}) must not exceed upper_bound.{channel} ({high})"
            )


# =============================================================================
# Detection Parameters
# =============================================================================

class GlobuleDetectionParameters(BaseModel):
    """
    Parameters of the fat globule detector.

    Defaults suit H&E liver sections: white (low saturation, high
    value) pixels are candidate globules; isolated globules must be close to
    circular and convex, clusters of touching globules pass looser floors and
    are split with a watershed before being classified again.
    """
    pixel_size_um: float = Field(0.5, gt=0, description="Micrometers per mask pixel")
    lower_bound: HsvBounds = HsvBounds(hue=0, saturation=0, value=200)
    upper_bound: HsvBounds = HsvBounds(hue=HUE_MAX, saturation=25, value=255)

    min_isolated_elongation: float = Field(0.4, ge=-1.0, le=1.0)
    min_overlapping_elongation: float = Field(0.05, ge=-1.0, le=1.0)
    min_isolated_solidity: float = Field(0.85, ge=0.0, le=1.0)
    min_overlapping_solidity: float = Field(0.7, ge=0.0, le=1.0)
    min_diameter_um: float = Field(5.0, ge=0)
    max_diameter_um: float = Field(100.0, gt=0)

    # Consumed by the tiling layer; validated here so a bad value fails early
    tile_width: int = Field(512, ge=0)
    tile_height: int = Field(512, ge=0)
    padding: int = Field(64, ge=0)
    boundary_threshold: float = Field(0.5, ge=0.0, le=1.0)

    @model_validator(mode='after')
    def check_ranges(self) -> "GlobuleDetectionParameters":
        _check_bound_order(self.lower_bound, self.upper_bound)
        if self.min_diameter_um >= self.max_diameter_um:
            raise ValueError(
                f"min_diameter_um ({self.min_diameter_um}) must be less than "
                f"max_diameter_um ({self.max_diameter_um})"
            )
        return self

    class Config:
        frozen = True
        extra = "forbid"


class TissueDetectionParameters(BaseModel):
    """
    Parameters of the low-resolution tissue detector.

    ``pixel_size_um`` is the full-resolution pixel size; the image handed to
    the detector has been read at ``downsample``.
    """
    pixel_size_um: float = Field(0.22, gt=0)
    lower_bound: HsvBounds = HsvBounds(hue=0, saturation=0, value=200)
    upper_bound: HsvBounds = HsvBounds(hue=HUE_MAX, saturation=10, value=255)
    downsample: float = Field(32.0, gt=0)
    min_tissue_area_um2: float = Field(5e5, ge=0)

    @model_validator(mode='after')
    def check_bounds(self) -> "TissueDetectionParameters":
        _check_bound_order(self.lower_bound, self.upper_bound)
        return self

    @property
    def effective_pixel_size_um(self) -> float:
        """Pixel size of the downsampled image the detector works on."""
        return self.pixel_size_um * self.downsample

    class Config:
        frozen = True
        extra = "forbid"

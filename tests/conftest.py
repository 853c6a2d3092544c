"""
Pytest fixtures for fatseg tests.

Provides synthetic masks and tiles drawn with numpy: single discs, pairs of
touching discs, rings, and RGB tiles with white globules on pink tissue.
"""

import pytest
import numpy as np
import tempfile
import shutil
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fatseg.utils.schemas import GlobuleDetectionParameters


def draw_disc(mask, center_x, center_y, radius, value=255):
    """Set every pixel within radius of (center_x, center_y) to value."""
    height, width = mask.shape[:2]
    y_indices, x_indices = np.ogrid[:height, :width]
    disc = (x_indices - center_x)**2 + (y_indices - center_y)**2 <= radius**2
    mask[disc] = value
    return mask


@pytest.fixture
def disc_mask():
    """
    256x256 uint8 mask with one filled disc.

    Disc of radius 30 centered at (128, 128).  At 0.5 um/px it is a 30 um
    globule.

    Returns:
        np.ndarray: 256x256 uint8 array, 255 inside the disc
    """
    mask = np.zeros((256, 256), dtype=np.uint8)
    return draw_disc(mask, 128, 128, 30)


@pytest.fixture
def touching_pair_mask():
    """
    256x256 uint8 mask with two equal touching discs.

    Radius 20, centers 30 px apart at (113, 128) and (143, 128).  The union
    is one connected component with a clear neck.

    Returns:
        np.ndarray: 256x256 uint8 array
    """
    mask = np.zeros((256, 256), dtype=np.uint8)
    draw_disc(mask, 113, 128, 20)
    draw_disc(mask, 143, 128, 20)
    return mask


@pytest.fixture
def ring_mask():
    """
    128x128 uint8 mask with a ring: disc of radius 40 with a hole of radius 15.

    Returns:
        np.ndarray: 128x128 uint8 array
    """
    mask = np.zeros((128, 128), dtype=np.uint8)
    draw_disc(mask, 64, 64, 40)
    draw_disc(mask, 64, 64, 15, value=0)
    return mask


@pytest.fixture
def empty_mask():
    """
    Empty binary mask for testing edge cases.

    Returns:
        np.ndarray: 256x256 uint8 array of zeros
    """
    return np.zeros((256, 256), dtype=np.uint8)


@pytest.fixture
def simple_rectangular_mask():
    """
    Simple rectangular mask for predictable area calculations.

    Returns:
        np.ndarray: 256x256 uint8 array with a 40x100 (rows x cols) block
    """
    mask = np.zeros((256, 256), dtype=np.uint8)
    mask[100:140, 50:150] = 255
    return mask


@pytest.fixture
def sample_tile():
    """
    256x256 RGB tile: pink tissue with one white globule and one white pair.

    Contains:
    - A white disc of radius 25 centered at (60, 60)
    - Two touching white discs of radius 20 centered at (145, 170) and (175, 170)
    - Pink (230, 150, 200) background, outside the default globule HSV range

    Returns:
        np.ndarray: 256x256x3 uint8 array
    """
    tile = np.empty((256, 256, 3), dtype=np.uint8)
    tile[:] = [230, 150, 200]
    draw_disc(tile, 60, 60, 25, value=[255, 255, 255])
    draw_disc(tile, 145, 170, 20, value=[255, 255, 255])
    draw_disc(tile, 175, 170, 20, value=[255, 255, 255])
    return tile


@pytest.fixture
def overview_image():
    """
    200x200 RGB overview: white slide background with one tissue section.

    Contains:
    - A pink disc of radius 60 at (100, 100) with a white hole of radius 10
    - A 10x10 pink speck in the top-left corner

    Returns:
        np.ndarray: 200x200x3 uint8 array
    """
    image = np.full((200, 200, 3), 255, dtype=np.uint8)
    draw_disc(image, 100, 100, 60, value=[230, 150, 200])
    draw_disc(image, 100, 100, 10, value=[255, 255, 255])
    image[10:20, 10:20] = [230, 150, 200]
    return image


@pytest.fixture
def default_params():
    """Default detection parameters at 0.5 um/px."""
    return GlobuleDetectionParameters(pixel_size_um=0.5)


@pytest.fixture
def temp_output_dir():
    """
    Temporary directory for test outputs.

    Yields:
        Path: Path to temporary directory
    """
    temp_dir = tempfile.mkdtemp(prefix="fatseg_test_")
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)

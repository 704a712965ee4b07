"""
Occupancy Grid and Voxelization Engine

This module provides:
- OccupancyGrid: Dense 3D boolean array of solid cells
- Voxelizer: Engine converting a 2D color image to brightness columns

Memory consideration: a 1000x1000 image at 64 layers is 64 MB of bool,
so very large images should be resized before export.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple
import logging
import time
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_DEPTH_RESOLUTION = 64


@dataclass
class OccupancyGrid:
    """
    Dense 3D occupancy grid indexed [x, y, z].

    True means solid material fills that unit cell. Columns are filled
    from z=0 upwards, so the column count is also the column height
    in layers.

    Coordinate system: X-right, Y-image rows, Z-up
    """

    size_x: int
    size_y: int
    size_z: int
    _data: np.ndarray = field(init=False, repr=False)

    def __post_init__(self):
        self._data = np.zeros((self.size_x, self.size_y, self.size_z), dtype=bool)

    @classmethod
    def from_array(cls, voxels: np.ndarray) -> "OccupancyGrid":
        """Wrap an existing (X, Y, Z) array; non-zero cells are solid."""
        voxels = np.asarray(voxels)
        if voxels.ndim != 3:
            raise ValueError("Occupancy array must have shape (X, Y, Z)")

        grid = cls(*voxels.shape)
        grid._data = voxels.astype(bool)
        return grid

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Get grid dimensions (x, y, z)."""
        return (self.size_x, self.size_y, self.size_z)

    @property
    def data(self) -> np.ndarray:
        """Get the raw boolean array."""
        return self._data

    @property
    def depth_resolution(self) -> int:
        return self.size_z

    @property
    def occupied_bounds(self) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
        """Get tight bounds around occupied cells (exclusive upper bound)."""
        occupied = np.argwhere(self._data)
        if len(occupied) == 0:
            return ((0, 0, 0), (0, 0, 0))
        min_coords = occupied.min(axis=0)
        max_coords = occupied.max(axis=0) + 1
        return (tuple(int(c) for c in min_coords), tuple(int(c) for c in max_coords))

    def set_voxel(self, x: int, y: int, z: int, solid: bool = True):
        """Mark a cell solid (out-of-bounds writes are ignored)."""
        if not self._in_bounds(x, y, z):
            return
        self._data[x, y, z] = solid

    def clear_voxel(self, x: int, y: int, z: int):
        self.set_voxel(x, y, z, False)

    def is_solid(self, x: int, y: int, z: int) -> bool:
        """Check if a cell is solid; anything outside the grid is empty."""
        if not self._in_bounds(x, y, z):
            return False
        return bool(self._data[x, y, z])

    def _in_bounds(self, x: int, y: int, z: int) -> bool:
        return (
            0 <= x < self.size_x and
            0 <= y < self.size_y and
            0 <= z < self.size_z
        )

    def count_voxels(self) -> int:
        """Count the number of solid cells."""
        return int(np.count_nonzero(self._data))

    def column_counts(self) -> np.ndarray:
        """
        Count solid cells per (x, y) column.

        Returns:
            int32 array of shape (X, Y)
        """
        return np.count_nonzero(self._data, axis=2).astype(np.int32)

    def height_field(self, voxel_size: float) -> np.ndarray:
        """
        Project the grid to per-column heights.

        height = count * voxel_size / depth_resolution

        Args:
            voxel_size: Physical edge length of one voxel

        Returns:
            float32 array of shape (X, Y); 0 means no material
        """
        if self.size_z == 0:
            return np.zeros((self.size_x, self.size_y), dtype=np.float32)
        counts = self.column_counts().astype(np.float64)
        return (counts * voxel_size / self.size_z).astype(np.float32)

    def fill_fraction(self) -> float:
        total = self.size_x * self.size_y * self.size_z
        if total == 0:
            return 0.0
        return self.count_voxels() / total


def brightness_to_depth(
    image: np.ndarray,
    invert_heights: bool = False,
    depth_resolution: int = DEFAULT_DEPTH_RESOLUTION
) -> np.ndarray:
    """
    Map pixel brightness to column depth.

    Args:
        image: RGB array of shape (H, W, 3) or greyscale (H, W)
        invert_heights: If True, brighter pixels are taller
        depth_resolution: Number of z layers

    Returns:
        int32 array of shape (H, W) with values in [0, depth_resolution)
    """
    pixels = np.asarray(image)
    if pixels.ndim == 2:
        brightness = pixels.astype(np.int32)
    else:
        # Integer average of R, G, B; any alpha channel is ignored
        brightness = pixels[:, :, :3].astype(np.int32).sum(axis=2) // 3

    brightness = np.clip(brightness, 0, 255)

    # Dark = tall unless inverted
    if not invert_heights:
        brightness = 255 - brightness

    return (brightness * depth_resolution) // 256


class Voxelizer:
    """
    Engine for converting a 2D image to a 3D occupancy grid.

    Each pixel becomes one column whose height is its (optionally
    inverted) brightness quantized to depth_resolution layers.
    """

    def __init__(self, depth_resolution: int = DEFAULT_DEPTH_RESOLUTION):
        """
        Initialize the voxelizer.

        Args:
            depth_resolution: Number of z layers (brightness quantization)
        """
        if depth_resolution < 1:
            raise ValueError("depth_resolution must be at least 1")

        self.depth_resolution = depth_resolution
        self._grid: Optional[OccupancyGrid] = None

    def voxelize(
        self,
        image: np.ndarray,
        invert_heights: bool = False,
        flip_left_right: bool = False
    ) -> OccupancyGrid:
        """
        Convert an image to an occupancy grid.

        The grid is mirrored along X by default to match the printed
        orientation; flip_left_right=True keeps image order instead.

        Args:
            image: RGB array of shape (H, W, 3)
            invert_heights: If True, white is highest instead of black
            flip_left_right: If True, disable the default mirror

        Returns:
            OccupancyGrid of shape (W, H, depth_resolution)
        """
        start = time.perf_counter()

        depth = brightness_to_depth(image, invert_heights, self.depth_resolution)
        h, w = depth.shape

        # Image is indexed [y, x]; the grid wants [x, y]
        columns = depth.T
        if not flip_left_right:
            columns = columns[::-1, :]

        layers = np.arange(self.depth_resolution, dtype=np.int32)
        self._grid = OccupancyGrid.from_array(layers[None, None, :] < columns[:, :, None])

        logger.debug(
            "Voxelized %dx%d image to %s grid: %d voxels (%.1f%%) in %.1f ms",
            w, h, self._grid.shape, self._grid.count_voxels(),
            self._grid.fill_fraction() * 100, (time.perf_counter() - start) * 1000
        )

        return self._grid

    @property
    def grid(self) -> Optional[OccupancyGrid]:
        """Get the most recent occupancy grid."""
        return self._grid


def voxelize(
    image: np.ndarray,
    invert_heights: bool = False,
    flip_left_right: bool = False,
    depth_resolution: int = DEFAULT_DEPTH_RESOLUTION
) -> OccupancyGrid:
    """Convert an image to an occupancy grid in one call."""
    return Voxelizer(depth_resolution).voxelize(image, invert_heights, flip_left_right)

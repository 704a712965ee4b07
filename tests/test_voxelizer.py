"""
Unit tests for the occupancy grid and voxelizer.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relief_stl.voxelizer import OccupancyGrid, Voxelizer, brightness_to_depth, voxelize


def solid_image(width: int, height: int, value: int) -> np.ndarray:
    return np.full((height, width, 3), value, dtype=np.uint8)


class TestOccupancyGrid(unittest.TestCase):
    """Tests for OccupancyGrid class."""

    def test_create_grid(self):
        grid = OccupancyGrid(4, 5, 6)
        assert grid.shape == (4, 5, 6)
        assert grid.count_voxels() == 0
        assert grid.depth_resolution == 6

    def test_set_and_clear(self):
        grid = OccupancyGrid(4, 4, 4)
        grid.set_voxel(1, 2, 3)
        assert grid.is_solid(1, 2, 3)
        assert grid.count_voxels() == 1

        grid.clear_voxel(1, 2, 3)
        assert not grid.is_solid(1, 2, 3)

    def test_out_of_bounds(self):
        """Out-of-bounds writes are ignored and reads are empty."""
        grid = OccupancyGrid(2, 2, 2)
        grid.set_voxel(5, 0, 0)
        grid.set_voxel(-1, 0, 0)
        assert grid.count_voxels() == 0
        assert not grid.is_solid(5, 0, 0)
        assert not grid.is_solid(0, 0, -1)

    def test_height_field(self):
        grid = OccupancyGrid(2, 1, 4)
        grid.set_voxel(0, 0, 0)
        grid.set_voxel(0, 0, 1)

        heights = grid.height_field(voxel_size=2.0)
        assert heights.shape == (2, 1)
        assert np.isclose(heights[0, 0], 2 * 2.0 / 4)
        assert heights[1, 0] == 0.0

    def test_occupied_bounds(self):
        grid = OccupancyGrid(8, 8, 8)
        grid.set_voxel(1, 2, 3)
        grid.set_voxel(4, 5, 6)
        assert grid.occupied_bounds == ((1, 2, 3), (5, 6, 7))


class TestBrightnessToDepth(unittest.TestCase):
    """Tests for the brightness mapping."""

    def test_black_is_tallest(self):
        depth = brightness_to_depth(solid_image(1, 1, 0))
        assert depth[0, 0] == 63

    def test_white_is_empty(self):
        depth = brightness_to_depth(solid_image(1, 1, 255))
        assert depth[0, 0] == 0

    def test_invert(self):
        assert brightness_to_depth(solid_image(1, 1, 255), invert_heights=True)[0, 0] == 63
        assert brightness_to_depth(solid_image(1, 1, 0), invert_heights=True)[0, 0] == 0

    def test_integer_average(self):
        """Brightness is the truncated mean of R, G, B."""
        pixel = np.array([[[10, 20, 31]]], dtype=np.uint8)  # mean 20
        depth = brightness_to_depth(pixel, invert_heights=True, depth_resolution=256)
        assert depth[0, 0] == 20

    def test_depth_resolution(self):
        depth = brightness_to_depth(solid_image(1, 1, 0), depth_resolution=16)
        assert depth[0, 0] == 15


class TestVoxelizer(unittest.TestCase):
    """Tests for Voxelizer."""

    def test_grid_dimensions(self):
        grid = Voxelizer().voxelize(solid_image(3, 2, 0))
        assert grid.shape == (3, 2, 64)

    def test_columns_filled_from_bottom(self):
        grid = voxelize(solid_image(2, 2, 128))
        expected = (255 - 128) * 64 // 256
        counts = grid.column_counts()
        assert np.all(counts == expected)
        assert grid.data[:, :, :expected].all()
        assert not grid.data[:, :, expected:].any()

    def test_all_white_is_empty(self):
        grid = voxelize(solid_image(4, 4, 255))
        assert grid.count_voxels() == 0

    def test_default_mirror(self):
        """Without flip, image column x lands at grid column W-1-x."""
        image = solid_image(3, 1, 255)
        image[0, 0] = 0

        grid = voxelize(image)
        counts = grid.column_counts()
        assert counts[2, 0] == 63
        assert counts[0, 0] == 0

    def test_flip_left_right(self):
        image = solid_image(3, 1, 255)
        image[0, 0] = 0

        grid = voxelize(image, flip_left_right=True)
        counts = grid.column_counts()
        assert counts[0, 0] == 63
        assert counts[2, 0] == 0

    def test_mirror_relation(self):
        """Flipped and unflipped grids are mirror images along X."""
        rng = np.random.default_rng(7)
        image = rng.integers(0, 256, size=(5, 6, 3), dtype=np.uint8)

        mirrored = voxelize(image).data
        direct = voxelize(image, flip_left_right=True).data
        assert np.array_equal(mirrored, direct[::-1, :, :])

    def test_invalid_depth_resolution(self):
        with self.assertRaises(ValueError):
            Voxelizer(depth_resolution=0)


if __name__ == "__main__":
    unittest.main(verbosity=2)

"""
Unit tests for exposed-surface meshing.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relief_stl.geometry import TriangleMesh, compute_normals
from relief_stl.meshing import (
    HeightFieldMesher,
    MeshStrategy,
    VoxelMesher,
    create_mesher,
    generate_height_field_mesh,
    generate_voxel_mesh,
    is_watertight,
    mesh_statistics,
)
from relief_stl.voxelizer import OccupancyGrid


def assert_outward(mesh: TriangleMesh, center):
    """Every face of a convex solid points away from its centre."""
    centroids = mesh.vertices.mean(axis=1)
    dots = np.einsum("ij,ij->i", mesh.normals, centroids - np.asarray(center))
    assert np.all(dots > 0)


class TestVoxelMesher(unittest.TestCase):
    """Tests for per-voxel face culling."""

    def test_empty_grid(self):
        mesh = VoxelMesher().mesh_from_grid(OccupancyGrid(4, 4, 4))
        assert mesh.triangle_count == 0
        assert mesh.vertices.shape == (0, 3, 3)

    def test_single_voxel(self):
        """Single voxel = 6 faces = 12 triangles."""
        grid = OccupancyGrid(3, 3, 3)
        grid.set_voxel(1, 1, 1)

        mesh = VoxelMesher(voxel_size=1.0, height_scale_divisor=1.0).mesh_from_grid(grid)

        assert mesh.triangle_count == 12
        assert_outward(mesh, (1.5, 1.5, 1.5))
        assert is_watertight(mesh)

    def test_shared_face_culled(self):
        """Two stacked voxels: the face between them is never emitted."""
        grid = OccupancyGrid(1, 1, 2)
        grid.set_voxel(0, 0, 0)
        grid.set_voxel(0, 0, 1)

        mesh = generate_voxel_mesh(grid.data, voxel_size=1.0, height_scale_divisor=1.0)

        assert mesh.triangle_count == 20
        z = mesh.vertices[:, :, 2]
        assert not np.any(np.all(z == 1.0, axis=1))
        assert np.isclose(z.max(), 2.0)
        assert is_watertight(mesh)

    def test_shared_face_culled_in_wider_grid(self):
        """Two stacked voxels in a 2x2 grid with empty neighbouring columns."""
        grid = OccupancyGrid(2, 2, 2)
        grid.set_voxel(0, 0, 0)
        grid.set_voxel(0, 0, 1)

        mesh = VoxelMesher(voxel_size=1.0, height_scale_divisor=1.0).mesh_from_grid(grid)

        assert mesh.triangle_count == 20
        z = mesh.vertices[:, :, 2]
        assert not np.any(np.all(z == 1.0, axis=1))
        lo, hi = mesh.bounds()
        assert np.allclose(lo, [0, 0, 0])
        assert np.allclose(hi, [1, 1, 2])
        assert is_watertight(mesh)

    def test_layer_height(self):
        """Layers are voxel_size / divisor tall; None uses the grid depth."""
        grid = OccupancyGrid(1, 1, 4)
        for z in range(4):
            grid.set_voxel(0, 0, z)

        mesh = VoxelMesher(voxel_size=2.0).mesh_from_grid(grid)
        lo, hi = mesh.bounds()
        assert np.allclose(hi, [2.0, 2.0, 2.0])

        mesh = VoxelMesher(voxel_size=2.0, height_scale_divisor=1.0).mesh_from_grid(grid)
        lo, hi = mesh.bounds()
        assert np.isclose(hi[2], 8.0)

    def test_normals_match_winding(self):
        grid = OccupancyGrid(3, 2, 4)
        grid.data[:, :, :2] = True
        grid.data[0, :, 2:] = True

        mesh = VoxelMesher(voxel_size=0.5).mesh_from_grid(grid)
        assert np.allclose(compute_normals(mesh.vertices), mesh.normals, atol=1e-6)

    def test_staircase_watertight(self):
        """Monotone column heights produce a closed surface."""
        grid = OccupancyGrid(5, 3, 6)
        for x in range(5):
            grid.data[x, :, :x + 1] = True

        mesh = VoxelMesher().mesh_from_grid(grid)
        assert is_watertight(mesh)

    def test_block_face_count(self):
        grid = OccupancyGrid(4, 4, 63)
        grid.data[:] = True
        mesh = VoxelMesher().mesh_from_grid(grid)
        # 16 top + 16 bottom + 4 sides * 4 columns * 63 layers
        assert mesh.triangle_count == 2 * (16 + 16 + 4 * 4 * 63)

    def test_invalid_divisor(self):
        with self.assertRaises(ValueError):
            VoxelMesher(height_scale_divisor=0)


class TestHeightFieldMesher(unittest.TestCase):
    """Tests for the height-field strategy."""

    def test_flat_three_by_three(self):
        """3x3 columns: 2x2 quads, 8 wall edges, 32 triangles."""
        heights = np.ones((3, 3))
        mesh = HeightFieldMesher(voxel_size=1.0).mesh(heights)

        assert mesh.triangle_count == 32
        assert is_watertight(mesh)

        walls = np.abs(mesh.normals[:, 2]) < 1e-6
        assert np.count_nonzero(walls) == 16

        lo, hi = mesh.bounds()
        assert np.allclose(lo, [0, 0, 0])
        assert np.allclose(hi, [2, 2, 1])

    def test_zero_corner_removes_quads(self):
        """A quad exists only if all four corner heights are positive."""
        heights = np.ones((3, 3))
        heights[0, 0] = 0.0

        mesh = HeightFieldMesher().mesh(heights)
        # 3 quads in an L: 12 surface triangles, 8 wall edges
        assert mesh.triangle_count == 12 + 16
        assert is_watertight(mesh)

    def test_empty(self):
        assert HeightFieldMesher().mesh(np.zeros((4, 4))).triangle_count == 0
        # A single row of columns never forms a quad
        assert HeightFieldMesher().mesh(np.ones((1, 5))).triangle_count == 0

    def test_random_heights_watertight(self):
        rng = np.random.default_rng(42)
        heights = rng.uniform(0.1, 5.0, size=(12, 9))

        mesh = generate_height_field_mesh(heights, voxel_size=0.25)
        qx, qy = 11, 8
        expected = 4 * qx * qy + 2 * 2 * (qx + qy)
        assert mesh.triangle_count == expected
        assert is_watertight(mesh)
        assert np.allclose(compute_normals(mesh.vertices), mesh.normals, atol=1e-5)

    def test_bottom_is_flat(self):
        heights = np.full((4, 4), 3.0)
        mesh = HeightFieldMesher().mesh(heights)

        down = mesh.normals[:, 2] < -0.5
        assert np.count_nonzero(down) == 2 * 9
        assert np.all(mesh.vertices[down][:, :, 2] == 0.0)

    def test_from_grid(self):
        grid = OccupancyGrid(3, 3, 64)
        grid.data[:, :, :32] = True

        mesh = HeightFieldMesher(voxel_size=2.0).mesh_from_grid(grid)
        lo, hi = mesh.bounds()
        assert np.allclose(hi, [4.0, 4.0, 1.0])

    def test_progress_callback(self):
        stages = []
        mesher = HeightFieldMesher(progress=lambda stage, fraction: stages.append((stage, fraction)))
        mesher.mesh(np.ones((3, 3)))

        assert [s for s, _ in stages] == ["quads", "surfaces", "walls"]
        fractions = [f for _, f in stages]
        assert fractions == sorted(fractions)
        assert fractions[-1] == 1.0

    def test_invalid_shape(self):
        with self.assertRaises(ValueError):
            HeightFieldMesher().mesh(np.ones(5))


class TestMeshHelpers(unittest.TestCase):
    """Tests for strategy selection and diagnostics."""

    def test_create_mesher(self):
        assert isinstance(create_mesher("height_field"), HeightFieldMesher)
        assert isinstance(create_mesher(MeshStrategy.VOXEL), VoxelMesher)
        with self.assertRaises(ValueError):
            create_mesher("marching_cubes")

    def test_open_mesh_not_watertight(self):
        mesh = TriangleMesh.from_vertices(np.array([
            [[0, 0, 0], [1, 0, 0], [0, 1, 0]],
        ]))
        assert not is_watertight(mesh)

    def test_mesh_statistics(self):
        mesh = HeightFieldMesher().mesh(np.ones((3, 3)))
        stats = mesh_statistics(mesh)

        assert stats["triangle_count"] == 32
        assert stats["watertight"]
        assert stats["size"] == (2.0, 2.0, 1.0)


if __name__ == "__main__":
    unittest.main(verbosity=2)

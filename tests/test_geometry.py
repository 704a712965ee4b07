"""
Unit tests for geometry primitives.
"""

import sys
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relief_stl.geometry import (
    Triangle,
    TriangleMesh,
    Vector3,
    compute_normals,
    face_normal,
)


class TestVector3(unittest.TestCase):
    """Tests for Vector3."""

    def test_cross(self):
        x = Vector3(1, 0, 0)
        y = Vector3(0, 1, 0)
        assert x.cross(y) == Vector3(0, 0, 1)
        assert y.cross(x) == Vector3(0, 0, -1)

    def test_normalize(self):
        v = Vector3(3, 0, 4).normalize()
        assert np.isclose(v.length(), 1.0)
        assert np.isclose(v.x, 0.6)
        assert np.isclose(v.z, 0.8)

    def test_normalize_zero_vector(self):
        """Zero vector falls back to +Z instead of NaN."""
        assert Vector3(0, 0, 0).normalize() == Vector3(0.0, 0.0, 1.0)


class TestTriangle(unittest.TestCase):
    """Tests for Triangle."""

    def test_counter_clockwise_normal(self):
        """Counter-clockwise winding seen from +Z gives a +Z normal."""
        tri = Triangle((0, 0, 0), (1, 0, 0), (0, 1, 0))
        assert tri.normal == Vector3(0.0, 0.0, 1.0)

    def test_reversed_winding(self):
        tri = Triangle((0, 0, 0), (0, 1, 0), (1, 0, 0))
        assert tri.normal == Vector3(0.0, 0.0, -1.0)

    def test_degenerate_normal(self):
        """Collinear vertices produce the fallback normal."""
        tri = Triangle((0, 0, 0), (1, 1, 1), (2, 2, 2))
        assert tri.normal == Vector3(0.0, 0.0, 1.0)

    def test_explicit_normal_kept(self):
        tri = Triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), normal=(0, 0, -1))
        assert tri.normal == Vector3(0, 0, -1)

    def test_face_normal_unit_length(self):
        n = face_normal(Vector3(0, 0, 0), Vector3(5, 0, 0), Vector3(0, 0, 7))
        assert np.isclose(n.length(), 1.0)
        assert np.isclose(n.y, -1.0)


class TestTriangleMesh(unittest.TestCase):
    """Tests for the array-backed mesh container."""

    def test_compute_normals(self):
        vertices = np.array([
            [[0, 0, 0], [1, 0, 0], [0, 1, 0]],
            [[0, 0, 0], [0, 0, 0], [0, 0, 0]],
        ], dtype=np.float32)
        normals = compute_normals(vertices)

        assert normals.shape == (2, 3)
        assert normals.dtype == np.float32
        assert np.allclose(normals[0], [0, 0, 1])
        assert np.allclose(normals[1], [0, 0, 1])

    def test_from_triangles_roundtrip(self):
        triangles = [
            Triangle((0, 0, 0), (1, 0, 0), (0, 1, 0)),
            Triangle((0, 0, 1), (0, 1, 1), (1, 0, 1)),
        ]
        mesh = TriangleMesh.from_triangles(triangles)

        assert mesh.triangle_count == 2
        assert mesh.to_triangles() == triangles

    def test_empty(self):
        mesh = TriangleMesh.from_triangles([])
        assert mesh.triangle_count == 0
        lo, hi = mesh.bounds()
        assert np.allclose(lo, 0) and np.allclose(hi, 0)

    def test_bounds(self):
        mesh = TriangleMesh.from_vertices(np.array([
            [[0, 0, 0], [2, 0, 0], [0, 3, 1]],
        ]))
        lo, hi = mesh.bounds()
        assert np.allclose(lo, [0, 0, 0])
        assert np.allclose(hi, [2, 3, 1])


if __name__ == "__main__":
    unittest.main(verbosity=2)

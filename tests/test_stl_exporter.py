"""
Unit tests for STL export and import.
"""

import sys
import tempfile
from pathlib import Path
import numpy as np
import unittest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relief_stl.exporters import STLExporter, read_stl, write_ascii, write_binary
from relief_stl.geometry import Triangle, TriangleMesh
from relief_stl.meshing import HeightFieldMesher


class TestSTLExporter(unittest.TestCase):
    """Tests for binary and ASCII STL writing."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        rng = np.random.default_rng(3)
        self.mesh = HeightFieldMesher(voxel_size=0.5).mesh(rng.uniform(0.5, 3.0, size=(4, 5)))

    def tearDown(self):
        self._tmp.cleanup()

    def test_binary_size(self):
        """Binary file is exactly 84 + 50 * N bytes."""
        path = write_binary(self.mesh, self.tmp / "a.stl")
        assert path.stat().st_size == 84 + 50 * self.mesh.triangle_count

    def test_binary_header(self):
        path = write_binary(self.mesh, self.tmp / "a.stl")
        data = path.read_bytes()

        assert data[:10] == b"Binary STL"
        assert int.from_bytes(data[80:84], "little") == self.mesh.triangle_count
        # Attribute byte count of the first record
        assert data[84 + 48:84 + 50] == b"\0\0"

    def test_long_header_truncated(self):
        path = STLExporter(header="x" * 200).export(self.mesh, self.tmp / "a.stl")
        data = path.read_bytes()
        assert data[:80] == b"x" * 80
        assert len(data) == 84 + 50 * self.mesh.triangle_count

    def test_binary_roundtrip(self):
        path = write_binary(self.mesh, self.tmp / "a.stl")
        loaded = read_stl(path)

        assert loaded.triangle_count == self.mesh.triangle_count
        assert np.array_equal(loaded.vertices, self.mesh.vertices)
        assert np.array_equal(loaded.normals, self.mesh.normals)

    def test_ascii_roundtrip(self):
        path = write_ascii(self.mesh, self.tmp / "a.stl")
        loaded = read_stl(path)

        assert loaded.triangle_count == self.mesh.triangle_count
        assert np.allclose(loaded.vertices, self.mesh.vertices)
        assert np.allclose(loaded.normals, self.mesh.normals)

    def test_ascii_layout(self):
        triangles = [Triangle((0, 0, 0), (1, 0, 0), (0, 1, 0))]
        path = STLExporter(binary=False, solid_name="relief").export(triangles, self.tmp / "t.stl")
        lines = path.read_text().splitlines()

        assert lines[0] == "solid relief"
        assert lines[1].startswith("  facet normal ")
        assert lines[2] == "    outer loop"
        assert lines[3].startswith("      vertex ")
        assert lines[6] == "    endloop"
        assert lines[7] == "  endfacet"
        assert lines[-1] == "endsolid relief"

    def test_zero_triangles(self):
        """An empty mesh still yields a valid file."""
        binary = write_binary(TriangleMesh.empty(), self.tmp / "b.stl")
        assert binary.stat().st_size == 84
        assert read_stl(binary).triangle_count == 0

        ascii_path = write_ascii([], self.tmp / "c.stl")
        assert ascii_path.read_text() == "solid model\nendsolid model\n"
        assert read_stl(ascii_path).triangle_count == 0

    def test_unwritable_path(self):
        with self.assertRaises(OSError):
            write_binary(self.mesh, self.tmp / "missing" / "dir" / "a.stl")

    def test_read_missing(self):
        with self.assertRaises(FileNotFoundError):
            read_stl(self.tmp / "nope.stl")

    def test_read_garbage(self):
        path = self.tmp / "junk.stl"
        path.write_bytes(b"not a mesh at all")
        with self.assertRaises(ValueError):
            read_stl(path)


if __name__ == "__main__":
    unittest.main(verbosity=2)

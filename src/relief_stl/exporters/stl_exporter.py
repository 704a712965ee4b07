"""
STL Format Exporter

STL is the de facto input format of 3D-printing slicers. It stores an
unindexed triangle soup with one normal per facet.

Binary layout (little-endian):
- Header: 80 bytes, ASCII text, zero-padded
- Triangle count: uint32
- Per triangle (50 bytes):
  - normal: 3x float32
  - v1, v2, v3: 3x 3x float32
  - attribute byte count: uint16 (always 0)

File size is exactly 84 + 50 * N bytes.

ASCII layout:
    solid <name>
      facet normal nx ny nz
        outer loop
          vertex x y z   (x3)
        endloop
      endfacet
    endsolid <name>
"""

from pathlib import Path
from typing import Iterable, Union
import logging
import struct
import time
import numpy as np

from ..geometry import Triangle, TriangleMesh

logger = logging.getLogger(__name__)

STL_HEADER_SIZE = 80
STL_COUNT_FORMAT = "<I"
STL_HEADER_TEXT = "Binary STL - relief-stl image to STL converter"
STL_SOLID_NAME = "model"

STL_RECORD_DTYPE = np.dtype([
    ("normal", "<f4", (3,)),
    ("vertices", "<f4", (3, 3)),
    ("attr", "<u2"),
])

MeshLike = Union[TriangleMesh, Iterable[Triangle]]


def _as_mesh(triangles: MeshLike) -> TriangleMesh:
    if isinstance(triangles, TriangleMesh):
        return triangles
    return TriangleMesh.from_triangles(triangles)


def _header_bytes(text: str) -> bytes:
    """Encode header text as exactly 80 zero-padded ASCII bytes."""
    raw = text.encode("ascii", errors="replace")[:STL_HEADER_SIZE]
    return raw.ljust(STL_HEADER_SIZE, b"\0")


class STLExporter:
    """
    Export triangle meshes to STL.

    Supports:
    - Binary STL (default, ~5x smaller)
    - ASCII STL with float32 round-trip precision
    """

    def __init__(
        self,
        binary: bool = True,
        header: str = STL_HEADER_TEXT,
        solid_name: str = STL_SOLID_NAME
    ):
        """
        Initialize the exporter.

        Args:
            binary: If True, write binary STL; otherwise ASCII
            header: Binary header text (truncated to 80 bytes)
            solid_name: Name used in ASCII solid/endsolid lines
        """
        self.binary = binary
        self.header = header
        self.solid_name = solid_name

    def export(self, triangles: MeshLike, output_path: Union[str, Path]) -> Path:
        """
        Export a mesh to an STL file.

        Any I/O error propagates unchanged; the file may then be
        incomplete and must not be trusted.

        Args:
            triangles: TriangleMesh or iterable of Triangle
            output_path: Output file path

        Returns:
            The path written
        """
        output_path = Path(output_path)
        mesh = _as_mesh(triangles)
        start = time.perf_counter()

        if self.binary:
            self._write_binary(mesh, output_path)
        else:
            self._write_ascii(mesh, output_path)

        logger.info(
            "Wrote %s STL %s: %d triangles, %d bytes in %.1f ms",
            "binary" if self.binary else "ASCII", output_path,
            mesh.triangle_count, output_path.stat().st_size,
            (time.perf_counter() - start) * 1000
        )
        return output_path

    def _write_binary(self, mesh: TriangleMesh, path: Path):
        n = mesh.triangle_count
        records = np.zeros(n, dtype=STL_RECORD_DTYPE)
        records["normal"] = mesh.normals
        records["vertices"] = mesh.vertices

        with open(path, "wb") as f:
            f.write(_header_bytes(self.header))
            f.write(struct.pack(STL_COUNT_FORMAT, n))
            f.write(records.tobytes())

    def _write_ascii(self, mesh: TriangleMesh, path: Path):
        # %.8e keeps 9 significant digits, enough to round-trip float32
        with open(path, "w", encoding="ascii") as f:
            f.write(f"solid {self.solid_name}\n")

            for normal, (v1, v2, v3) in zip(mesh.normals, mesh.vertices):
                f.write("  facet normal %.8e %.8e %.8e\n" % tuple(normal))
                f.write("    outer loop\n")
                f.write("      vertex %.8e %.8e %.8e\n" % tuple(v1))
                f.write("      vertex %.8e %.8e %.8e\n" % tuple(v2))
                f.write("      vertex %.8e %.8e %.8e\n" % tuple(v3))
                f.write("    endloop\n")
                f.write("  endfacet\n")

            f.write(f"endsolid {self.solid_name}\n")


def write_binary(triangles: MeshLike, path: Union[str, Path], header: str = STL_HEADER_TEXT) -> Path:
    """Write a binary STL file."""
    return STLExporter(binary=True, header=header).export(triangles, path)


def write_ascii(triangles: MeshLike, path: Union[str, Path], solid_name: str = STL_SOLID_NAME) -> Path:
    """Write an ASCII STL file."""
    return STLExporter(binary=False, solid_name=solid_name).export(triangles, path)


def _looks_binary(data: bytes) -> bool:
    """Binary if the declared count matches the file size exactly."""
    if len(data) < STL_HEADER_SIZE + 4:
        return False
    (count,) = struct.unpack_from(STL_COUNT_FORMAT, data, STL_HEADER_SIZE)
    return len(data) == STL_HEADER_SIZE + 4 + count * STL_RECORD_DTYPE.itemsize


def _parse_binary(data: bytes) -> TriangleMesh:
    (count,) = struct.unpack_from(STL_COUNT_FORMAT, data, STL_HEADER_SIZE)
    records = np.frombuffer(data, dtype=STL_RECORD_DTYPE, count=count, offset=STL_HEADER_SIZE + 4)
    return TriangleMesh(
        normals=records["normal"].astype(np.float32),
        vertices=records["vertices"].astype(np.float32),
    )


def _parse_ascii(text: str) -> TriangleMesh:
    normals = []
    vertices = []

    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        if parts[0] == "facet":
            if len(parts) != 5 or parts[1] != "normal":
                raise ValueError(f"Malformed facet line: {line.strip()}")
            normals.append([float(v) for v in parts[2:5]])
        elif parts[0] == "vertex":
            if len(parts) != 4:
                raise ValueError(f"Malformed vertex line: {line.strip()}")
            vertices.append([float(v) for v in parts[1:4]])

    if len(vertices) != 3 * len(normals):
        raise ValueError(
            f"ASCII STL has {len(normals)} facets but {len(vertices)} vertices"
        )

    if not normals:
        return TriangleMesh.empty()

    return TriangleMesh(
        normals=np.array(normals, dtype=np.float32),
        vertices=np.array(vertices, dtype=np.float32).reshape(-1, 3, 3),
    )


def read_stl(path: Union[str, Path]) -> TriangleMesh:
    """
    Load an STL file in either layout.

    Args:
        path: Input file path

    Returns:
        TriangleMesh with normals and vertices as stored
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"STL file not found: {path}")

    data = path.read_bytes()
    if _looks_binary(data):
        return _parse_binary(data)

    if not data.lstrip().startswith(b"solid"):
        raise ValueError(f"Not an STL file: {path}")
    return _parse_ascii(data.decode("ascii"))

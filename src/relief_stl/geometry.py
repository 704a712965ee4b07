"""
Geometry Primitives

This module provides:
- Vector3: Immutable 3-component vector
- Triangle: Oriented face with a unit normal
- TriangleMesh: Array-backed triangle list used by the meshers and exporters

Winding convention: counter-clockwise when viewed from outside, so the
right-hand normal of (v2 - v1) x (v3 - v1) points away from the solid.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple
import math
import numpy as np


# Normal used when a face has zero area
DEGENERATE_NORMAL = (0.0, 0.0, 1.0)


class Vector3(NamedTuple):
    """Immutable 3D vector."""
    x: float
    y: float
    z: float

    def subtract(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalize(self) -> "Vector3":
        """
        Get the unit vector pointing the same way.

        The zero vector normalizes to (0, 0, 1) so that degenerate
        faces never produce NaN normals.
        """
        length = self.length()
        if length == 0:
            return Vector3(*DEGENERATE_NORMAL)
        return Vector3(self.x / length, self.y / length, self.z / length)

    def __str__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f}, {self.z:.2f})"


def face_normal(v1: Vector3, v2: Vector3, v3: Vector3) -> Vector3:
    """Unit normal of the triangle (v1, v2, v3) by the right-hand rule."""
    return v2.subtract(v1).cross(v3.subtract(v1)).normalize()


@dataclass(frozen=True)
class Triangle:
    """
    Oriented triangle.

    If no normal is given it is computed from the vertices. An explicit
    normal is stored as-is; the caller is responsible for it matching
    the winding.
    """

    v1: Vector3
    v2: Vector3
    v3: Vector3
    normal: Optional[Vector3] = field(default=None)

    def __post_init__(self):
        # Accept plain tuples/lists for convenience
        for name in ("v1", "v2", "v3"):
            value = getattr(self, name)
            if not isinstance(value, Vector3):
                object.__setattr__(self, name, Vector3(*value))

        if self.normal is None:
            object.__setattr__(self, "normal", face_normal(self.v1, self.v2, self.v3))
        elif not isinstance(self.normal, Vector3):
            object.__setattr__(self, "normal", Vector3(*self.normal))

    @property
    def vertices(self) -> Tuple[Vector3, Vector3, Vector3]:
        return (self.v1, self.v2, self.v3)

    def __str__(self) -> str:
        return f"Triangle[normal={self.normal}, v1={self.v1}, v2={self.v2}, v3={self.v3}]"


def compute_normals(vertices: np.ndarray) -> np.ndarray:
    """
    Compute unit normals for an array of triangles.

    Args:
        vertices: Array of shape (N, 3, 3) - N triangles of 3 xyz vertices

    Returns:
        Array of shape (N, 3) float32; zero-area faces get (0, 0, 1)
    """
    vertices = np.asarray(vertices, dtype=np.float64)
    if len(vertices) == 0:
        return np.zeros((0, 3), dtype=np.float32)

    edge1 = vertices[:, 1] - vertices[:, 0]
    edge2 = vertices[:, 2] - vertices[:, 0]
    normals = np.cross(edge1, edge2)
    lengths = np.linalg.norm(normals, axis=1)

    degenerate = lengths == 0
    lengths[degenerate] = 1.0
    normals = normals / lengths[:, None]
    normals[degenerate] = DEGENERATE_NORMAL

    return normals.astype(np.float32)


class TriangleMesh(NamedTuple):
    """Container for triangle soup geometry."""
    normals: np.ndarray   # (N, 3) float32 unit normals
    vertices: np.ndarray  # (N, 3, 3) float32 positions (v1, v2, v3)

    @classmethod
    def empty(cls) -> "TriangleMesh":
        return cls(
            normals=np.zeros((0, 3), dtype=np.float32),
            vertices=np.zeros((0, 3, 3), dtype=np.float32),
        )

    @classmethod
    def from_triangles(cls, triangles: Iterable[Triangle]) -> "TriangleMesh":
        """Pack a sequence of Triangle objects into arrays."""
        triangles = list(triangles)
        if not triangles:
            return cls.empty()

        normals = np.array([t.normal for t in triangles], dtype=np.float32)
        vertices = np.array([t.vertices for t in triangles], dtype=np.float32)
        return cls(normals=normals, vertices=vertices)

    @classmethod
    def from_vertices(cls, vertices: np.ndarray) -> "TriangleMesh":
        """Build a mesh from (N, 3, 3) vertices, computing the normals."""
        vertices = np.asarray(vertices, dtype=np.float32).reshape(-1, 3, 3)
        return cls(normals=compute_normals(vertices), vertices=vertices)

    @property
    def triangle_count(self) -> int:
        return len(self.vertices)

    def triangles(self) -> Iterator[Triangle]:
        """Iterate over the mesh as Triangle objects."""
        for normal, (v1, v2, v3) in zip(self.normals, self.vertices):
            yield Triangle(
                Vector3(*map(float, v1)),
                Vector3(*map(float, v2)),
                Vector3(*map(float, v3)),
                normal=Vector3(*map(float, normal)),
            )

    def to_triangles(self) -> List[Triangle]:
        return list(self.triangles())

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Get the axis-aligned bounding box (min_xyz, max_xyz)."""
        if self.triangle_count == 0:
            zero = np.zeros(3, dtype=np.float32)
            return (zero, zero.copy())
        points = self.vertices.reshape(-1, 3)
        return (points.min(axis=0), points.max(axis=0))

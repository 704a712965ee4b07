"""
Exposed-Surface Meshing with Numba JIT Compilation

This module turns an occupancy grid into a closed triangle mesh that
bounds only the exposed surfaces of the solid. Two strategies share the
same interface (mesh_from_grid):

1. HeightFieldMesher: one ruled quad per 2x2 block of positive column
   heights, a flat bottom, and vertical walls where a neighbour quad is
   missing. Smooth tops, far fewer triangles.
2. VoxelMesher: per-voxel face culling. Every solid cell emits the faces
   whose neighbour is empty or outside the grid. Terraced tops.

Both kernels count triangles first and then fill preallocated arrays,
so every call returns freshly allocated geometry.
"""

from enum import Enum
from typing import Callable, Optional, Union
import logging
import time
import numpy as np
from numba import njit

from .geometry import TriangleMesh
from .voxelizer import OccupancyGrid

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


class MeshStrategy(Enum):
    """Available meshing strategies."""
    HEIGHT_FIELD = "height_field"  # Ruled quads over column heights
    VOXEL = "voxel"                # Culled voxel faces


class FaceDirection:
    """Face directions for voxel culling."""
    WEST = 0    # -X
    EAST = 1    # +X
    SOUTH = 2   # -Y
    NORTH = 3   # +Y
    BOTTOM = 4  # -Z
    TOP = 5     # +Z


FACE_NORMALS = np.array([
    [-1, 0, 0],  # WEST
    [1, 0, 0],   # EAST
    [0, -1, 0],  # SOUTH
    [0, 1, 0],   # NORTH
    [0, 0, -1],  # BOTTOM
    [0, 0, 1],   # TOP
], dtype=np.float32)

# Unit-cube corner offsets per face, counter-clockwise seen from outside.
# Each face is split into triangles (0, 1, 2) and (0, 2, 3).
FACE_CORNERS = np.array([
    [[0, 0, 0], [0, 0, 1], [0, 1, 1], [0, 1, 0]],  # WEST
    [[1, 0, 0], [1, 1, 0], [1, 1, 1], [1, 0, 1]],  # EAST
    [[0, 0, 0], [1, 0, 0], [1, 0, 1], [0, 0, 1]],  # SOUTH
    [[0, 1, 0], [0, 1, 1], [1, 1, 1], [1, 1, 0]],  # NORTH
    [[0, 0, 0], [0, 1, 0], [1, 1, 0], [1, 0, 0]],  # BOTTOM
    [[0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1]],  # TOP
], dtype=np.int64)

FACE_OFFSETS = np.array([
    [-1, 0, 0],
    [1, 0, 0],
    [0, -1, 0],
    [0, 1, 0],
    [0, 0, -1],
    [0, 0, 1],
], dtype=np.int64)


# ---------------------------------------------------------------------------
# Shared kernels
# ---------------------------------------------------------------------------

@njit(cache=True)
def _unit_normal(
    ax: float, ay: float, az: float,
    bx: float, by: float, bz: float,
    cx: float, cy: float, cz: float
):
    """Normalized (b - a) x (c - a); zero area gives (0, 0, 1)."""
    ux = bx - ax
    uy = by - ay
    uz = bz - az
    vx = cx - ax
    vy = cy - ay
    vz = cz - az

    nx = uy * vz - uz * vy
    ny = uz * vx - ux * vz
    nz = ux * vy - uy * vx

    length = np.sqrt(nx * nx + ny * ny + nz * nz)
    if length == 0.0:
        return 0.0, 0.0, 1.0
    return nx / length, ny / length, nz / length


@njit(cache=True)
def _put_triangle(
    normals: np.ndarray,
    vertices: np.ndarray,
    i: int,
    nx: float, ny: float, nz: float,
    ax: float, ay: float, az: float,
    bx: float, by: float, bz: float,
    cx: float, cy: float, cz: float
):
    """Write one triangle into slot i."""
    normals[i, 0] = nx
    normals[i, 1] = ny
    normals[i, 2] = nz
    vertices[i, 0, 0] = ax
    vertices[i, 0, 1] = ay
    vertices[i, 0, 2] = az
    vertices[i, 1, 0] = bx
    vertices[i, 1, 1] = by
    vertices[i, 1, 2] = bz
    vertices[i, 2, 0] = cx
    vertices[i, 2, 1] = cy
    vertices[i, 2, 2] = cz


@njit(cache=True)
def _put_computed(
    normals: np.ndarray,
    vertices: np.ndarray,
    i: int,
    ax: float, ay: float, az: float,
    bx: float, by: float, bz: float,
    cx: float, cy: float, cz: float
):
    """Write one triangle into slot i with a normal from its winding."""
    nx, ny, nz = _unit_normal(ax, ay, az, bx, by, bz, cx, cy, cz)
    _put_triangle(normals, vertices, i, nx, ny, nz,
                  ax, ay, az, bx, by, bz, cx, cy, cz)


# ---------------------------------------------------------------------------
# Height-field kernels
# ---------------------------------------------------------------------------

@njit(cache=True)
def _quad_existence(heights: np.ndarray) -> np.ndarray:
    """
    Mark the quads whose four corner heights are all positive.

    Args:
        heights: Column heights of shape (X, Y)

    Returns:
        Boolean array of shape (X - 1, Y - 1)
    """
    sx, sy = heights.shape
    qx = max(sx - 1, 0)
    qy = max(sy - 1, 0)
    exists = np.zeros((qx, qy), dtype=np.bool_)

    for x in range(qx):
        for y in range(qy):
            if (heights[x, y] > 0.0 and heights[x + 1, y] > 0.0 and
                    heights[x, y + 1] > 0.0 and heights[x + 1, y + 1] > 0.0):
                exists[x, y] = True

    return exists


@njit(cache=True)
def _count_walls(exists: np.ndarray) -> int:
    """Count wall quads: quad edges with no 4-connected neighbour quad."""
    qx, qy = exists.shape
    count = 0

    for x in range(qx):
        for y in range(qy):
            if not exists[x, y]:
                continue
            if y == 0 or not exists[x, y - 1]:
                count += 1
            if y == qy - 1 or not exists[x, y + 1]:
                count += 1
            if x == 0 or not exists[x - 1, y]:
                count += 1
            if x == qx - 1 or not exists[x + 1, y]:
                count += 1

    return count


@njit(cache=True)
def _emit_surfaces(
    heights: np.ndarray,
    exists: np.ndarray,
    voxel_size: float,
    normals: np.ndarray,
    vertices: np.ndarray,
    start: int
) -> int:
    """Emit top and bottom triangles for every existing quad."""
    qx, qy = exists.shape
    i = start

    for x in range(qx):
        for y in range(qy):
            if not exists[x, y]:
                continue

            x0 = x * voxel_size
            y0 = y * voxel_size
            x1 = (x + 1) * voxel_size
            y1 = (y + 1) * voxel_size

            z00 = heights[x, y]
            z10 = heights[x + 1, y]
            z01 = heights[x, y + 1]
            z11 = heights[x + 1, y + 1]

            # Top: each corner keeps its own height
            _put_computed(normals, vertices, i,
                          x0, y0, z00, x1, y0, z10, x1, y1, z11)
            i += 1
            _put_computed(normals, vertices, i,
                          x0, y0, z00, x1, y1, z11, x0, y1, z01)
            i += 1

            # Bottom: flat at z=0, reversed winding
            _put_triangle(normals, vertices, i, 0.0, 0.0, -1.0,
                          x0, y0, 0.0, x1, y1, 0.0, x1, y0, 0.0)
            i += 1
            _put_triangle(normals, vertices, i, 0.0, 0.0, -1.0,
                          x0, y0, 0.0, x0, y1, 0.0, x1, y1, 0.0)
            i += 1

    return i


@njit(cache=True)
def _emit_walls(
    heights: np.ndarray,
    exists: np.ndarray,
    voxel_size: float,
    normals: np.ndarray,
    vertices: np.ndarray,
    start: int
) -> int:
    """Emit vertical walls along quad edges that have no neighbour quad."""
    qx, qy = exists.shape
    i = start

    for x in range(qx):
        for y in range(qy):
            if not exists[x, y]:
                continue

            x0 = x * voxel_size
            y0 = y * voxel_size
            x1 = (x + 1) * voxel_size
            y1 = (y + 1) * voxel_size

            z00 = heights[x, y]
            z10 = heights[x + 1, y]
            z01 = heights[x, y + 1]
            z11 = heights[x + 1, y + 1]

            # y = y0 edge
            if y == 0 or not exists[x, y - 1]:
                _put_triangle(normals, vertices, i, 0.0, -1.0, 0.0,
                              x0, y0, z00, x0, y0, 0.0, x1, y0, 0.0)
                i += 1
                _put_triangle(normals, vertices, i, 0.0, -1.0, 0.0,
                              x0, y0, z00, x1, y0, 0.0, x1, y0, z10)
                i += 1

            # y = y1 edge
            if y == qy - 1 or not exists[x, y + 1]:
                _put_triangle(normals, vertices, i, 0.0, 1.0, 0.0,
                              x0, y1, z01, x1, y1, 0.0, x0, y1, 0.0)
                i += 1
                _put_triangle(normals, vertices, i, 0.0, 1.0, 0.0,
                              x0, y1, z01, x1, y1, z11, x1, y1, 0.0)
                i += 1

            # x = x0 edge
            if x == 0 or not exists[x - 1, y]:
                _put_triangle(normals, vertices, i, -1.0, 0.0, 0.0,
                              x0, y0, z00, x0, y1, 0.0, x0, y0, 0.0)
                i += 1
                _put_triangle(normals, vertices, i, -1.0, 0.0, 0.0,
                              x0, y0, z00, x0, y1, z01, x0, y1, 0.0)
                i += 1

            # x = x1 edge
            if x == qx - 1 or not exists[x + 1, y]:
                _put_triangle(normals, vertices, i, 1.0, 0.0, 0.0,
                              x1, y0, z10, x1, y0, 0.0, x1, y1, 0.0)
                i += 1
                _put_triangle(normals, vertices, i, 1.0, 0.0, 0.0,
                              x1, y0, z10, x1, y1, 0.0, x1, y1, z11)
                i += 1

    return i


# ---------------------------------------------------------------------------
# Voxel kernels
# ---------------------------------------------------------------------------

@njit(cache=True)
def _face_exposed(voxels: np.ndarray, x: int, y: int, z: int, direction: int) -> bool:
    """A face is exposed if the cell across it is empty or outside the grid."""
    sx, sy, sz = voxels.shape
    nx = x + FACE_OFFSETS[direction, 0]
    ny = y + FACE_OFFSETS[direction, 1]
    nz = z + FACE_OFFSETS[direction, 2]

    if nx < 0 or nx >= sx or ny < 0 or ny >= sy or nz < 0 or nz >= sz:
        return True
    return not voxels[nx, ny, nz]


@njit(cache=True)
def _count_exposed_faces(voxels: np.ndarray) -> int:
    sx, sy, sz = voxels.shape
    count = 0

    for x in range(sx):
        for y in range(sy):
            for z in range(sz):
                if not voxels[x, y, z]:
                    continue
                for direction in range(6):
                    if _face_exposed(voxels, x, y, z, direction):
                        count += 1

    return count


@njit(cache=True)
def _emit_voxel_faces(
    voxels: np.ndarray,
    voxel_size: float,
    layer_height: float,
    normals: np.ndarray,
    vertices: np.ndarray
) -> int:
    """Emit two triangles per exposed face of every solid cell."""
    sx, sy, sz = voxels.shape
    i = 0

    for x in range(sx):
        for y in range(sy):
            for z in range(sz):
                if not voxels[x, y, z]:
                    continue

                for direction in range(6):
                    if not _face_exposed(voxels, x, y, z, direction):
                        continue

                    for t in range(2):
                        for k in range(3):
                            c = 0 if k == 0 else t + k
                            vertices[i, k, 0] = (x + FACE_CORNERS[direction, c, 0]) * voxel_size
                            vertices[i, k, 1] = (y + FACE_CORNERS[direction, c, 1]) * voxel_size
                            vertices[i, k, 2] = (z + FACE_CORNERS[direction, c, 2]) * layer_height
                        normals[i, 0] = FACE_NORMALS[direction, 0]
                        normals[i, 1] = FACE_NORMALS[direction, 1]
                        normals[i, 2] = FACE_NORMALS[direction, 2]
                        i += 1

    return i


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------

def _report(progress: Optional[ProgressCallback], stage: str, fraction: float):
    if progress is not None:
        progress(stage, fraction)


def _allocate(triangle_count: int):
    normals = np.zeros((triangle_count, 3), dtype=np.float32)
    vertices = np.zeros((triangle_count, 3, 3), dtype=np.float32)
    return normals, vertices


class HeightFieldMesher:
    """
    Mesh a height field as ruled quads with a flat bottom and walls.

    A quad at (x, y) spans columns x..x+1 and y..y+1 and exists only if
    all four corner heights are positive. Walls are added on quad edges
    without a 4-connected neighbour quad, which closes the solid.
    """

    def __init__(
        self,
        voxel_size: float = 1.0,
        progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the mesher.

        Args:
            voxel_size: Physical x/y spacing between columns
            progress: Optional callback(stage, fraction)
        """
        self.voxel_size = voxel_size
        self.progress = progress

    def mesh(self, heights: np.ndarray) -> TriangleMesh:
        """
        Generate a closed mesh from column heights.

        Args:
            heights: Array of shape (X, Y); 0 means no material

        Returns:
            TriangleMesh (empty if no quad exists)
        """
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2:
            raise ValueError("Heights must have shape (X, Y)")

        start = time.perf_counter()
        heights = np.ascontiguousarray(heights)
        voxel_size = float(self.voxel_size)

        exists = _quad_existence(heights)
        quad_count = int(np.count_nonzero(exists))
        wall_count = _count_walls(exists)
        _report(self.progress, "quads", 0.2)

        normals, vertices = _allocate(4 * quad_count + 2 * wall_count)

        end = _emit_surfaces(heights, exists, voxel_size, normals, vertices, 0)
        _report(self.progress, "surfaces", 0.6)

        end = _emit_walls(heights, exists, voxel_size, normals, vertices, end)
        _report(self.progress, "walls", 1.0)

        logger.debug(
            "Height-field mesh: %d quads, %d walls, %d triangles in %.1f ms",
            quad_count, wall_count, end, (time.perf_counter() - start) * 1000
        )

        return TriangleMesh(normals=normals, vertices=vertices)

    def mesh_from_grid(self, grid: OccupancyGrid) -> TriangleMesh:
        """Generate a mesh from an OccupancyGrid via its height field."""
        return self.mesh(grid.height_field(self.voxel_size))


class VoxelMesher:
    """
    Mesh every solid cell as a box, keeping only exposed faces.

    Faces shared by two solid cells are never emitted. Each layer is
    voxel_size / height_scale_divisor tall, so a column of n cells
    reaches n * voxel_size / height_scale_divisor, the same height the
    height-field strategy uses when the divisor is the depth resolution.
    """

    def __init__(
        self,
        voxel_size: float = 1.0,
        height_scale_divisor: Optional[float] = None,
        progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the mesher.

        Args:
            voxel_size: Physical x/y edge length of a voxel
            height_scale_divisor: Layer height divisor; None uses the
                grid's depth resolution
            progress: Optional callback(stage, fraction)
        """
        if height_scale_divisor is not None and height_scale_divisor <= 0:
            raise ValueError("height_scale_divisor must be positive")

        self.voxel_size = voxel_size
        self.height_scale_divisor = height_scale_divisor
        self.progress = progress

    def mesh(self, voxels: np.ndarray) -> TriangleMesh:
        """
        Generate a closed mesh from a boolean occupancy array.

        Args:
            voxels: Array of shape (X, Y, Z); truthy cells are solid

        Returns:
            TriangleMesh (empty if no cell is solid)
        """
        voxels = np.ascontiguousarray(voxels, dtype=np.bool_)
        if voxels.ndim != 3:
            raise ValueError("Voxels must have shape (X, Y, Z)")

        divisor = self.height_scale_divisor
        if divisor is None:
            divisor = max(voxels.shape[2], 1)

        start = time.perf_counter()
        voxel_size = float(self.voxel_size)
        layer_height = voxel_size / float(divisor)

        face_count = _count_exposed_faces(voxels)
        _report(self.progress, "faces", 0.3)

        normals, vertices = _allocate(2 * face_count)
        end = _emit_voxel_faces(voxels, voxel_size, layer_height, normals, vertices)
        _report(self.progress, "walls", 1.0)

        logger.debug(
            "Voxel mesh: %d exposed faces, %d triangles in %.1f ms",
            face_count, end, (time.perf_counter() - start) * 1000
        )

        return TriangleMesh(normals=normals, vertices=vertices)

    def mesh_from_grid(self, grid: OccupancyGrid) -> TriangleMesh:
        return self.mesh(grid.data)


Mesher = Union[HeightFieldMesher, VoxelMesher]


def create_mesher(
    strategy: Union[str, MeshStrategy] = MeshStrategy.HEIGHT_FIELD,
    voxel_size: float = 1.0,
    progress: Optional[ProgressCallback] = None
) -> Mesher:
    """
    Build the mesher for a strategy.

    Args:
        strategy: MeshStrategy or its name ("height_field", "voxel")
        voxel_size: Physical voxel edge length
        progress: Optional callback(stage, fraction)

    Returns:
        An object with mesh_from_grid(grid) -> TriangleMesh
    """
    if isinstance(strategy, str):
        strategy = MeshStrategy(strategy)

    if strategy == MeshStrategy.HEIGHT_FIELD:
        return HeightFieldMesher(voxel_size, progress=progress)
    return VoxelMesher(voxel_size, progress=progress)


def generate_height_field_mesh(
    heights: np.ndarray,
    voxel_size: float,
    progress: Optional[ProgressCallback] = None
) -> TriangleMesh:
    """Mesh a height field in one call."""
    return HeightFieldMesher(voxel_size, progress).mesh(heights)


def generate_voxel_mesh(
    voxels: np.ndarray,
    voxel_size: float,
    height_scale_divisor: float = 1.0,
    progress: Optional[ProgressCallback] = None
) -> TriangleMesh:
    """Mesh an occupancy array in one call."""
    return VoxelMesher(voxel_size, height_scale_divisor, progress).mesh(voxels)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

def _directed_edge_keys(mesh: TriangleMesh):
    """Encode every directed triangle edge (a, b) as integer keys."""
    points = mesh.vertices.reshape(-1, 3)
    _, ids = np.unique(points, axis=0, return_inverse=True)
    ids = np.asarray(ids, dtype=np.int64).reshape(-1, 3)
    n = int(ids.max()) + 1

    starts = ids.ravel()
    ends = np.roll(ids, -1, axis=1).ravel()
    return starts * n + ends, ends * n + starts


def is_watertight(mesh: TriangleMesh) -> bool:
    """
    Check the closed 2-manifold edge property.

    Every directed edge must occur exactly once and its reverse must
    occur exactly once. An empty mesh counts as closed.
    """
    if mesh.triangle_count == 0:
        return True

    forward, reverse = _directed_edge_keys(mesh)
    unique, counts = np.unique(forward, return_counts=True)
    if np.any(counts != 1):
        return False
    return bool(np.all(np.isin(reverse, unique)))


def mesh_statistics(mesh: TriangleMesh) -> dict:
    """
    Summarize a mesh.

    Returns:
        Dictionary with triangle count, bounding box and closure
    """
    bounds_min, bounds_max = mesh.bounds()
    return {
        "triangle_count": mesh.triangle_count,
        "bounds_min": tuple(float(v) for v in bounds_min),
        "bounds_max": tuple(float(v) for v in bounds_max),
        "size": tuple(float(v) for v in bounds_max - bounds_min),
        "watertight": is_watertight(mesh),
    }

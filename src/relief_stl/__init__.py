"""
relief-stl
==========

Turns a 2D image into a printable 3D relief.

Every pixel's brightness becomes a column of voxels; the exposed surface
of the resulting solid is triangulated into a closed mesh and written as
binary or ASCII STL for slicers and 3D printers.

Key Features:
- Brightness to height mapping with selectable polarity and mirroring
- Two meshing strategies: smooth height-field and blocky voxel faces
- Numba JIT compiled meshing kernels
- Binary and ASCII STL export, plus a reader for checking results
- Optional posterize/monochrome/resize pre-filters

Example Usage:
    from relief_stl import ReliefGenerator, ExportSettings

    generator = ReliefGenerator(ExportSettings(width=100, height=80, thickness=4))
    generator.load_image("photo.png")
    result = generator.run("relief.stl")
"""

__version__ = "1.0.0"
__author__ = "relief-stl Team"

from .config import ExportSettings, InvalidDimensionsError
from .exporters import STLExporter, read_stl
from .generator import ExportResult, ReliefGenerator, export_image_to_stl, submit_export
from .geometry import Triangle, TriangleMesh, Vector3
from .ingestion import ImageLoader
from .meshing import HeightFieldMesher, MeshStrategy, VoxelMesher, is_watertight
from .voxelizer import OccupancyGrid, Voxelizer

__all__ = [
    "ReliefGenerator",
    "ExportResult",
    "export_image_to_stl",
    "submit_export",
    "ExportSettings",
    "InvalidDimensionsError",
    "ImageLoader",
    "OccupancyGrid",
    "Voxelizer",
    "HeightFieldMesher",
    "VoxelMesher",
    "MeshStrategy",
    "is_watertight",
    "STLExporter",
    "read_stl",
    "Triangle",
    "TriangleMesh",
    "Vector3",
]

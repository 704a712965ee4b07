"""
Main ReliefGenerator Class

This is the primary interface for the image-to-STL pipeline.
It orchestrates:
1. Image loading and optional 2D filters
2. Voxelization (brightness -> column height)
3. Mesh generation (height-field or voxel strategy)
4. STL export

Example Usage:
    settings = ExportSettings(width=100, height=80, thickness=5)
    generator = ReliefGenerator(settings)
    generator.load_image("photo.png")
    result = generator.run("relief.stl")
    print(result.triangle_count)
"""

from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import NamedTuple, Optional, Tuple, Union
import logging
import time
import numpy as np

from .config import ExportSettings
from .exporters import STLExporter
from .geometry import TriangleMesh
from .ingestion import ImageLoader
from .meshing import MeshStrategy, ProgressCallback, create_mesher, mesh_statistics
from .voxelizer import OccupancyGrid, Voxelizer

logger = logging.getLogger(__name__)


class ExportResult(NamedTuple):
    """Outcome of a finished export."""
    path: Path
    triangle_count: int
    voxel_size: float
    dimensions: Tuple[float, float, float]
    elapsed: float


def ensure_stl_suffix(path: Union[str, Path]) -> Path:
    """Append .stl unless the name already ends with it (any case)."""
    path = Path(path)
    if path.name.lower().endswith(".stl"):
        return path
    return path.with_name(path.name + ".stl")


class ReliefGenerator:
    """
    High-level interface for converting an image to a printable relief.

    Attributes:
        settings: Export parameters (dimensions, flags, strategy)
        grid: The current occupancy grid
        mesh: The current triangle mesh
    """

    def __init__(
        self,
        settings: Optional[ExportSettings] = None,
        progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the ReliefGenerator.

        Args:
            settings: Export parameters; defaults to one unit per pixel
                once an image is loaded
            progress: Optional callback(stage, fraction)
        """
        self.settings = settings
        self.progress = progress

        self._image_loader: Optional[ImageLoader] = None
        self._grid: Optional[OccupancyGrid] = None
        self._mesh: Optional[TriangleMesh] = None
        self._voxel_size: Optional[float] = None

    def load_image(self, image_path: Union[str, Path]) -> "ReliefGenerator":
        """
        Load an image file.

        Args:
            image_path: Path to a PNG/JPEG image

        Returns:
            self for method chaining
        """
        self._image_loader = ImageLoader().load(image_path)
        self._reset()
        return self

    def load_array(self, pixels: np.ndarray) -> "ReliefGenerator":
        """
        Load image data from a numpy array.

        Args:
            pixels: Array of shape (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            self for method chaining
        """
        self._image_loader = ImageLoader().load_from_array(pixels)
        self._reset()
        return self

    def preprocess(
        self,
        posterize: bool = False,
        monochrome: bool = False,
        resize: Optional[Tuple[int, int]] = None
    ) -> "ReliefGenerator":
        """
        Apply 2D filters to the loaded image.

        Order: resize, then monochrome, then posterize.

        Args:
            posterize: Quantize channels to 4 levels
            monochrome: Average channels to grey
            resize: Target (width, height) in pixels

        Returns:
            self for method chaining
        """
        loader = self._require_image()
        if resize is not None:
            loader.resize(width=resize[0], height=resize[1])
        if monochrome:
            loader.monochrome()
        if posterize:
            loader.posterize()
        self._reset()
        return self

    def configure(self, **kwargs) -> "ReliefGenerator":
        """
        Update export settings.

        Unknown keys raise TypeError, like the ExportSettings constructor.

        Returns:
            self for method chaining
        """
        settings = self._require_settings()
        merged = settings.to_dict()
        merged.update(kwargs)
        self.settings = ExportSettings(**merged)
        self._reset()
        return self

    def voxelize(self) -> "ReliefGenerator":
        """
        Convert the loaded image to an occupancy grid.

        Returns:
            self for method chaining
        """
        loader = self._require_image()
        settings = self._require_settings().validate()

        self._report("voxelize", 0.0)
        voxelizer = Voxelizer(settings.depth_resolution)
        self._grid = voxelizer.voxelize(
            loader.image,
            invert_heights=settings.invert_heights,
            flip_left_right=settings.flip_left_right
        )
        self._voxel_size = settings.voxel_size(self._grid.shape)
        self._mesh = None

        logger.info(
            "Voxelized %dx%d image: %d voxels, voxel size %.4f",
            loader.width, loader.height, self._grid.count_voxels(), self._voxel_size
        )
        return self

    def generate_mesh(
        self,
        strategy: Optional[Union[str, MeshStrategy]] = None
    ) -> "ReliefGenerator":
        """
        Generate the exposed-surface mesh from the grid.

        Args:
            strategy: Overrides settings.strategy for this call

        Returns:
            self for method chaining
        """
        if self._grid is None:
            raise RuntimeError("No occupancy grid. Call voxelize() first.")

        if strategy is None:
            strategy = self._require_settings().strategy
        strategy = MeshStrategy(strategy)

        mesher = create_mesher(strategy, self._voxel_size, progress=self.progress)
        self._mesh = mesher.mesh_from_grid(self._grid)

        logger.info("Generated %d triangles (%s)", self.triangle_count, strategy.value)
        return self

    def export_stl(
        self,
        output_path: Union[str, Path],
        binary: Optional[bool] = None
    ) -> Path:
        """
        Write the mesh to an STL file.

        Args:
            output_path: Output path; ".stl" is appended if missing
            binary: Overrides settings.binary

        Returns:
            The path written
        """
        if self._mesh is None:
            self.generate_mesh()

        if binary is None:
            binary = self._require_settings().binary

        self._report("write", 0.0)
        path = STLExporter(binary=binary).export(self._mesh, ensure_stl_suffix(output_path))
        self._report("write", 1.0)
        return path

    def run(self, output_path: Union[str, Path]) -> ExportResult:
        """
        Run the whole pipeline: validate, voxelize, mesh, write.

        Args:
            output_path: Output STL path

        Returns:
            ExportResult with the triangle count
        """
        start = time.perf_counter()
        settings = self._require_settings().validate()

        self.voxelize()
        self.generate_mesh()
        path = self.export_stl(output_path)

        elapsed = time.perf_counter() - start
        logger.info("Exported %s: %d triangles in %.2fs", path, self.triangle_count, elapsed)

        return ExportResult(
            path=path,
            triangle_count=self.triangle_count,
            voxel_size=self._voxel_size,
            dimensions=settings.final_dimensions,
            elapsed=elapsed
        )

    def _require_image(self) -> ImageLoader:
        if self._image_loader is None:
            raise RuntimeError("No image loaded. Call load_image() first.")
        return self._image_loader

    def _require_settings(self) -> ExportSettings:
        if self.settings is None:
            loader = self._require_image()
            self.settings = ExportSettings.for_image(loader.width, loader.height)
        return self.settings

    def _reset(self):
        self._grid = None
        self._mesh = None
        self._voxel_size = None

    def _report(self, stage: str, fraction: float):
        if self.progress is not None:
            self.progress(stage, fraction)

    @property
    def image(self) -> Optional[np.ndarray]:
        """Get the current (possibly filtered) RGB image."""
        if self._image_loader is None:
            return None
        return self._image_loader.image

    @property
    def grid(self) -> Optional[OccupancyGrid]:
        """Get the current occupancy grid."""
        return self._grid

    @property
    def mesh(self) -> Optional[TriangleMesh]:
        """Get the current mesh."""
        return self._mesh

    @property
    def voxel_size(self) -> Optional[float]:
        return self._voxel_size

    @property
    def voxel_count(self) -> int:
        if self._grid is None:
            return 0
        return self._grid.count_voxels()

    @property
    def triangle_count(self) -> int:
        if self._mesh is None:
            return 0
        return self._mesh.triangle_count

    def get_mesh_stats(self) -> dict:
        """
        Get mesh statistics.

        Returns:
            Dictionary with grid, voxel and mesh figures
        """
        if self._mesh is None:
            return {"error": "No mesh"}

        stats = mesh_statistics(self._mesh)
        stats["voxel_count"] = self.voxel_count
        stats["grid_size"] = self._grid.shape
        stats["voxel_size"] = self._voxel_size
        return stats


def export_image_to_stl(
    image: Union[np.ndarray, str, Path],
    output_path: Union[str, Path],
    settings: Optional[ExportSettings] = None,
    progress: Optional[ProgressCallback] = None
) -> ExportResult:
    """
    Convert an image to an STL file in one call.

    Args:
        image: RGB array or path to an image file
        output_path: Output STL path
        settings: Export parameters (defaults to one unit per pixel)
        progress: Optional callback(stage, fraction)

    Returns:
        ExportResult
    """
    if settings is not None:
        settings.validate()

    generator = ReliefGenerator(settings, progress=progress)
    if isinstance(image, np.ndarray):
        generator.load_array(image)
    else:
        generator.load_image(image)
    return generator.run(output_path)


def submit_export(
    image: Union[np.ndarray, str, Path],
    output_path: Union[str, Path],
    settings: Optional[ExportSettings] = None,
    executor: Optional[ThreadPoolExecutor] = None,
    progress: Optional[ProgressCallback] = None
) -> "Future[ExportResult]":
    """
    Run an export off the calling thread.

    The returned future resolves to an ExportResult, or raises whatever
    the export raised (invalid dimensions, I/O errors).

    Args:
        image: RGB array or path to an image file
        output_path: Output STL path
        settings: Export parameters
        executor: Executor to use; a one-shot worker thread if None
        progress: Optional callback(stage, fraction), called on the worker

    Returns:
        Future of the ExportResult
    """
    if executor is not None:
        return executor.submit(export_image_to_stl, image, output_path, settings, progress)

    own_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="relief-export")
    future = own_executor.submit(export_image_to_stl, image, output_path, settings, progress)
    # Already-submitted work still runs to completion
    own_executor.shutdown(wait=False)
    return future

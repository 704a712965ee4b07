"""
Export configuration and constants.

Physical units are whatever the slicer assumes (millimetres in practice).
Width, height and thickness are the nominal print box; the scale percent
multiplies all three before voxel sizing.
"""

from dataclasses import dataclass, asdict
from numbers import Real
from typing import Any, Dict, Tuple
import math

from .meshing import MeshStrategy
from .voxelizer import DEFAULT_DEPTH_RESOLUTION

DEFAULT_THICKNESS = 255.0
MIN_SCALE_PERCENT = 1.0
MAX_SCALE_PERCENT = 300.0


class InvalidDimensionsError(ValueError):
    """Raised when physical dimensions or scale are out of range."""


def _is_positive(value) -> bool:
    """True for a finite real number above zero (rejects None, NaN, inf)."""
    return isinstance(value, Real) and math.isfinite(value) and value > 0


@dataclass
class ExportSettings:
    """
    User-chosen parameters for one image-to-STL export.

    Attributes:
        width: Nominal model width (x)
        height: Nominal model depth along image rows (y)
        thickness: Nominal model thickness (z)
        scale_percent: Multiplier for all three dimensions, 1-300
        invert_heights: If True, white is highest instead of black
        flip_left_right: If True, do not mirror the image along X
        depth_resolution: Number of brightness layers
        strategy: Meshing strategy name ("height_field" or "voxel")
        binary: Write binary STL (ASCII otherwise)
    """

    width: float
    height: float
    thickness: float = DEFAULT_THICKNESS
    scale_percent: float = 100.0
    invert_heights: bool = False
    flip_left_right: bool = False
    depth_resolution: int = DEFAULT_DEPTH_RESOLUTION
    strategy: str = "height_field"
    binary: bool = True

    @classmethod
    def for_image(cls, image_width: int, image_height: int, **kwargs) -> "ExportSettings":
        """Defaults: one unit per pixel, thickness 255."""
        kwargs.setdefault("width", float(image_width))
        kwargs.setdefault("height", float(image_height))
        return cls(**kwargs)

    def validate(self) -> "ExportSettings":
        """
        Reject invalid settings before any work is done.

        Returns:
            self, for chaining
        """
        if not all(_is_positive(v) for v in (self.width, self.height, self.thickness)):
            raise InvalidDimensionsError(
                f"All dimensions must be positive finite values "
                f"(got {self.width} x {self.height} x {self.thickness})"
            )
        if not (_is_positive(self.scale_percent) and
                MIN_SCALE_PERCENT <= self.scale_percent <= MAX_SCALE_PERCENT):
            raise InvalidDimensionsError(
                f"Scale percentage must be between {MIN_SCALE_PERCENT:g} and "
                f"{MAX_SCALE_PERCENT:g} (got {self.scale_percent})"
            )
        if self.depth_resolution < 1:
            raise InvalidDimensionsError(
                f"Depth resolution must be at least 1 (got {self.depth_resolution})"
            )
        try:
            MeshStrategy(self.strategy)
        except ValueError:
            choices = ", ".join(s.value for s in MeshStrategy)
            raise ValueError(
                f"Unknown mesh strategy {self.strategy!r} (expected one of: {choices})"
            ) from None
        return self

    @property
    def final_dimensions(self) -> Tuple[float, float, float]:
        """Width, height and thickness after the scale percent."""
        factor = self.scale_percent / 100.0
        return (self.width * factor, self.height * factor, self.thickness * factor)

    def voxel_size(self, grid_shape: Tuple[int, int, int]) -> float:
        """
        Uniform voxel edge length for a grid.

        The per-axis size is extent / cells; the smallest wins so voxels
        stay cubic and the model fits the box on every axis.

        Args:
            grid_shape: (x cells, y cells, z layers)

        Returns:
            Voxel edge length
        """
        width, height, thickness = self.final_dimensions
        nx, ny, nz = grid_shape
        return min(width / nx, height / ny, thickness / nz)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

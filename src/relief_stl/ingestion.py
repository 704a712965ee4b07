"""
Image Ingestion and Preprocessing Module

This module handles:
- Loading PNG/JPEG images as RGB arrays of shape (H, W, 3)
- Accepting greyscale/RGBA arrays from other callers
- Simple 2D pre-filters: posterize, monochrome, resize

Brightness is all that matters downstream, so alpha is dropped.
"""

from pathlib import Path
from typing import Optional, Tuple, Union
import logging
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Posterize output levels and the thresholds between them
POSTERIZE_LEVELS = np.array([0, 85, 170, 255], dtype=np.uint8)
POSTERIZE_THRESHOLDS = np.array([43, 128, 213])


def to_rgb_array(pixels: np.ndarray) -> np.ndarray:
    """
    Normalize an image array to RGB uint8.

    Args:
        pixels: Array of shape (H, W), (H, W, 3) or (H, W, 4)

    Returns:
        Array of shape (H, W, 3), dtype uint8
    """
    pixels = np.asarray(pixels)

    if pixels.ndim == 2:
        pixels = np.stack([pixels, pixels, pixels], axis=-1)
    elif pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError("Image array must have shape (H, W), (H, W, 3) or (H, W, 4)")

    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError("Image must have non-zero width and height")

    return np.clip(pixels[:, :, :3], 0, 255).astype(np.uint8)


def posterize(pixels: np.ndarray) -> np.ndarray:
    """
    Quantize each channel to 4 levels: 0, 85, 170, 255.

    Args:
        pixels: RGB array of shape (H, W, 3)

    Returns:
        New posterized RGB array
    """
    pixels = to_rgb_array(pixels)
    indices = np.searchsorted(POSTERIZE_THRESHOLDS, pixels, side="right")
    return POSTERIZE_LEVELS[indices]


def monochrome(pixels: np.ndarray) -> np.ndarray:
    """Replace every channel with the integer mean of R, G, B."""
    pixels = to_rgb_array(pixels)
    mean = (pixels.astype(np.int32).sum(axis=2) // 3).astype(np.uint8)
    return np.stack([mean, mean, mean], axis=-1)


def resize_image(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Resize an RGB image.

    Bilinear interpolation when either dimension grows, area averaging
    (box filter) when shrinking.

    Args:
        pixels: RGB array of shape (H, W, 3)
        width: Target width in pixels
        height: Target height in pixels

    Returns:
        Resized RGB array of shape (height, width, 3)
    """
    if width < 1 or height < 1:
        raise ValueError(f"Invalid target size {width}x{height}")

    pixels = to_rgb_array(pixels)
    src_h, src_w = pixels.shape[:2]

    if width > src_w or height > src_h:
        resample = Image.Resampling.BILINEAR
    else:
        resample = Image.Resampling.BOX

    img = Image.fromarray(pixels)
    img = img.resize((width, height), resample)
    return np.array(img, dtype=np.uint8)


class ImageLoader:
    """
    Image loader producing the RGB array the voxelizer consumes.

    Filters are applied in place on the loaded image and can be
    chained:

        loader = ImageLoader().load("photo.jpg").resize(width=200).monochrome()
    """

    def __init__(self):
        self._image: Optional[np.ndarray] = None
        self._source: Optional[Path] = None

    def load(self, image_path: Union[str, Path]) -> "ImageLoader":
        """
        Load an image file (PNG, JPEG, ...).

        Args:
            image_path: Path to the image

        Returns:
            self for method chaining
        """
        image_path = Path(image_path)
        if not image_path.exists():
            raise FileNotFoundError(f"Image not found: {image_path}")

        with Image.open(image_path) as img:
            # Composite transparency onto white so clear pixels stay low
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                rgba = img.convert("RGBA")
                background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
                img = Image.alpha_composite(background, rgba)
            rgb = img.convert("RGB")
            self._image = np.array(rgb, dtype=np.uint8)

        self._source = image_path
        logger.debug("Loaded %s (%dx%d)", image_path, self.width, self.height)
        return self

    def load_from_array(self, pixels: np.ndarray) -> "ImageLoader":
        """
        Load from a numpy array instead of a file.

        Args:
            pixels: Array of shape (H, W), (H, W, 3) or (H, W, 4)

        Returns:
            self for method chaining
        """
        self._image = to_rgb_array(pixels)
        self._source = None
        return self

    def posterize(self) -> "ImageLoader":
        self._image = posterize(self.image)
        return self

    def monochrome(self) -> "ImageLoader":
        self._image = monochrome(self.image)
        return self

    def resize(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        scale: Optional[float] = None
    ) -> "ImageLoader":
        """
        Resize the image.

        Args:
            width: Target width (if height not specified, maintains aspect)
            height: Target height (if width not specified, maintains aspect)
            scale: Scale factor (e.g., 0.5 = half size)

        Returns:
            self for method chaining
        """
        orig_h, orig_w = self.image.shape[:2]

        if scale is not None:
            new_w = max(1, int(orig_w * scale))
            new_h = max(1, int(orig_h * scale))
        elif width is not None and height is not None:
            new_w, new_h = width, height
        elif width is not None:
            new_w = width
            new_h = max(1, int(orig_h * width / orig_w))
        elif height is not None:
            new_h = height
            new_w = max(1, int(orig_w * height / orig_h))
        else:
            return self

        self._image = resize_image(self.image, new_w, new_h)
        logger.debug("Resized %dx%d -> %dx%d", orig_w, orig_h, new_w, new_h)
        return self

    @property
    def image(self) -> np.ndarray:
        """Get the RGB image array."""
        if self._image is None:
            raise RuntimeError("No image loaded")
        return self._image

    @property
    def source(self) -> Optional[Path]:
        return self._source

    @property
    def size(self) -> Tuple[int, int]:
        """Get image size as (width, height)."""
        h, w = self.image.shape[:2]
        return (w, h)

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

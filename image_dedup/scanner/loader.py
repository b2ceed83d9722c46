"""
Image loading module for the scanner package.

Decodes images from paths or byte buffers and optionally downscales them so
that neither side exceeds a configured maximum dimension.
"""

from __future__ import annotations

import io
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..dependencies import Image, LANCZOS, _logger
from ..errors import ConfigurationError, ImageDecodeError


@dataclass
class LoadedImage:
    """
    A decoded, possibly downscaled raster.

    Attributes:
        image: Decoded Pillow image (mode 'RGB' or 'L')
        width: Final width in pixels
        height: Final height in pixels
        original_width: Width before any resize
        original_height: Height before any resize
        was_resized: True if the image was downscaled
        load_time_ms: Decode plus resize time
    """
    image: Image.Image
    width: int
    height: int
    original_width: int
    original_height: int
    was_resized: bool = False
    load_time_ms: int = 0

    @property
    def dimensions(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def original_dimensions(self) -> tuple[int, int]:
        return (self.original_width, self.original_height)


class ImageLoaderBackend(ABC):
    """Decodes images. Implementations must be safe to call from several threads."""

    @abstractmethod
    def load_from_path(self, path: str | Path) -> LoadedImage:
        """Decode the image stored at ``path``."""

    @abstractmethod
    def load_from_bytes(self, data: bytes, format_hint: Optional[str] = None) -> LoadedImage:
        """Decode an in-memory image, optionally restricted to one format."""

    @property
    def max_dimension(self) -> Optional[int]:
        return None

    @property
    def strategy_name(self) -> str:
        return type(self).__name__

    def estimate_memory_usage(self, width: int, height: int) -> int:
        """Rough decoded size in bytes (RGBA8)."""
        return width * height * 4


def scaled_dimensions(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """
    Shrink (width, height) proportionally so the longer side equals max_dimension.

    Each side is kept at least 1 pixel.
    """
    ratio = max_dimension / max(width, height)
    return (max(1, int(width * ratio)), max(1, int(height * ratio)))


class StandardImageLoader(ImageLoaderBackend):
    """
    Pillow based loader.

    Images are fully loaded (so truncated files fail here rather than during
    hashing), converted to RGB unless already RGB or grayscale, and
    downscaled with Lanczos resampling when ``max_dimension`` is set.
    """

    def __init__(self, max_dimension: Optional[int] = None):
        if max_dimension is not None and max_dimension < 1:
            raise ConfigurationError(f"max_dimension must be >= 1, got {max_dimension}")
        self._max_dimension = max_dimension

    @property
    def max_dimension(self) -> Optional[int]:
        return self._max_dimension

    @property
    def strategy_name(self) -> str:
        if self._max_dimension is not None:
            return "standard_with_resize"
        return "standard"

    def load_from_path(self, path: str | Path) -> LoadedImage:
        start = time.perf_counter()
        identifier = str(path)
        try:
            with Image.open(identifier) as img:
                image = self._decode(img)
        except OSError as e:
            # Covers UnidentifiedImageError, truncated data and missing files
            raise ImageDecodeError(identifier, e, f"Failed to load image: {e}") from e
        except (ValueError, SyntaxError, EOFError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(identifier, e, f"Failed to load image: {e}") from e
        return self._finish(image, start)

    def load_from_bytes(self, data: bytes, format_hint: Optional[str] = None) -> LoadedImage:
        start = time.perf_counter()
        identifier = f"<{len(data)} bytes>"
        formats = [format_hint.upper()] if format_hint else None
        try:
            with Image.open(io.BytesIO(data), formats=formats) as img:
                image = self._decode(img)
        except (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError) as e:
            raise ImageDecodeError(identifier, e, f"Failed to load image from memory: {e}") from e
        return self._finish(image, start)

    def _decode(self, img: Image.Image) -> Image.Image:
        # Force load to detect truncated images early
        img.load()
        if img.mode not in ('RGB', 'L'):
            return img.convert('RGB')
        # Detach from the file handle that the context manager closes
        return img.copy()

    def _finish(self, image: Image.Image, start: float) -> LoadedImage:
        original_width, original_height = image.size
        was_resized = False

        if self._max_dimension is not None and max(image.size) > self._max_dimension:
            new_size = scaled_dimensions(original_width, original_height, self._max_dimension)
            image = image.resize(new_size, LANCZOS)
            was_resized = True
            _logger.debug(
                f"Resized {original_width}x{original_height} -> {new_size[0]}x{new_size[1]}"
            )

        return LoadedImage(
            image=image,
            width=image.width,
            height=image.height,
            original_width=original_width,
            original_height=original_height,
            was_resized=was_resized,
            load_time_ms=int((time.perf_counter() - start) * 1000),
        )


__all__ = [
    'LoadedImage',
    'ImageLoaderBackend',
    'StandardImageLoader',
    'scaled_dimensions',
]

"""
DCT (pHash style) perceptual hash.

The image is reduced to a grayscale working grid, transformed with a 2-D
type-II DCT, and the top-left size x size low-frequency block is compared
against its own median.

The working grid edge is ``size * 4 * quality_factor`` (never smaller than
``size``), so quality_factor=1.0 reproduces the classic 32x32 grid for an
8x8 hash and smaller factors trade accuracy for speed.
"""

from __future__ import annotations

from functools import lru_cache

from ..config import DCT_HIGHFREQ_FACTOR, DEFAULT_QUALITY_FACTOR
from ..dependencies import Image, np, LANCZOS
from .base import HashAlgorithm, PerceptualHashBackend


@lru_cache(maxsize=16)
def dct_matrix(size: int):
    """Return an orthonormal DCT-II transform matrix of the given size."""
    n = np.arange(size, dtype=np.float64)
    k = n[:, None]
    mat = np.cos((2.0 * n + 1.0) * k * np.pi / (2.0 * size))
    mat[0, :] *= np.sqrt(1.0 / size)
    mat[1:, :] *= np.sqrt(2.0 / size)
    mat.setflags(write=False)
    return mat


def working_grid_size(size: int, quality_factor: float) -> int:
    return max(size, int(round(size * DCT_HIGHFREQ_FACTOR * quality_factor)))


class DctHasher(PerceptualHashBackend):
    """Most accurate and most expensive of the built-in hashes."""

    display_name = "DCT (Discrete Cosine Transform)"
    complexity = 7
    threshold_divisor = 4

    def __init__(self, size: int = 8, quality_factor: float = DEFAULT_QUALITY_FACTOR):
        super().__init__(size)
        self._quality_factor = float(quality_factor)
        self._grid = working_grid_size(size, self._quality_factor)
        self._algorithm = HashAlgorithm.dct(size)

    @property
    def algorithm(self) -> HashAlgorithm:
        return self._algorithm

    @property
    def quality_factor(self) -> float:
        return self._quality_factor

    @property
    def grid_size(self) -> int:
        return self._grid

    def parameters(self) -> dict:
        return {'size': self._size, 'quality_factor': self._quality_factor}

    def _compute_bits(self, image: Image.Image):
        gray = image.convert('L').resize((self._grid, self._grid), LANCZOS)
        pixels = np.asarray(gray, dtype=np.float64)

        mat = dct_matrix(self._grid)
        # 2-D DCT: C * A * C^T
        coefficients = mat @ pixels @ mat.T

        low_freq = coefficients[:self._size, :self._size]
        return low_freq > np.median(low_freq)


__all__ = ['DctHasher', 'dct_matrix', 'working_grid_size']

"""
Average (mean) perceptual hash.

The image is reduced to a size x size grayscale grid and each bit records
whether the pixel is brighter than the grid mean.
"""

from __future__ import annotations

from ..dependencies import Image, imagehash, np, LANCZOS
from .base import HashAlgorithm, PerceptualHashBackend


class AverageHasher(PerceptualHashBackend):
    """Fast, moderately accurate hash built on imagehash.average_hash."""

    display_name = "Average Hash"
    complexity = 2
    threshold_divisor = 8

    def __init__(self, size: int = 8):
        super().__init__(size)
        self._algorithm = HashAlgorithm.average(size)

    @property
    def algorithm(self) -> HashAlgorithm:
        return self._algorithm

    def _compute_bits(self, image: Image.Image):
        if self._size < 2:
            # imagehash rejects hash_size < 2
            pixels = np.asarray(image.convert('L').resize((1, 1), LANCZOS), dtype=np.float64)
            return pixels > pixels.mean()
        return imagehash.average_hash(image, hash_size=self._size).hash


__all__ = ['AverageHasher']

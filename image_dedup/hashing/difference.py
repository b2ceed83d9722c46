"""
Difference (gradient) perceptual hash.

The image is reduced to a (size + 1) x size grayscale grid; each bit records
whether a pixel is brighter than its right-hand neighbour. Good at capturing
structure and edges, cheap to compute.
"""

from __future__ import annotations

from ..dependencies import Image, np, LANCZOS
from .base import HashAlgorithm, PerceptualHashBackend


class DifferenceHasher(PerceptualHashBackend):
    """Horizontal-gradient hash."""

    display_name = "Difference Hash"
    complexity = 3
    threshold_divisor = 6

    def __init__(self, size: int = 8):
        super().__init__(size)
        self._algorithm = HashAlgorithm.difference(size)

    @property
    def algorithm(self) -> HashAlgorithm:
        return self._algorithm

    def _compute_bits(self, image: Image.Image):
        gray = image.convert('L').resize((self._size + 1, self._size), LANCZOS)
        pixels = np.asarray(gray, dtype=np.int16)
        # left > right, one row of `size` comparisons per grid row
        return pixels[:, :-1] > pixels[:, 1:]


__all__ = ['DifferenceHasher']

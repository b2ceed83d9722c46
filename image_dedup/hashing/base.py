"""
Core perceptual hash types shared by all hashing back-ends.

A hash is a fixed-size bit vector packed row-major, MSB-first within each
byte, with trailing zero padding in the final byte. Two hashes can only be
compared when they come from the same algorithm with the same size.
"""

from __future__ import annotations

import base64
import enum
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from ..dependencies import Image, np
from ..errors import IncompatibleHashesError


class HashKind(str, enum.Enum):
    """Supported perceptual hash algorithms."""
    DCT = 'dct'
    AVERAGE = 'average'
    DIFFERENCE = 'difference'


@dataclass(frozen=True)
class HashAlgorithm:
    """
    Algorithm descriptor: the kind of hash plus its grid size.

    Equality of descriptors is the only comparability predicate for hashes.
    """
    kind: HashKind
    size: int

    @classmethod
    def dct(cls, size: int) -> 'HashAlgorithm':
        return cls(HashKind.DCT, size)

    @classmethod
    def average(cls, size: int) -> 'HashAlgorithm':
        return cls(HashKind.AVERAGE, size)

    @classmethod
    def difference(cls, size: int) -> 'HashAlgorithm':
        return cls(HashKind.DIFFERENCE, size)

    @property
    def name(self) -> str:
        """Algorithm name as written to scan_info ('dct', 'average', 'difference')."""
        return self.kind.value

    @property
    def bit_length(self) -> int:
        return self.size * self.size

    @property
    def tag(self) -> str:
        """Compact tag carried by result records, e.g. 'dct-8'."""
        return f"{self.kind.value}-{self.size}"

    def __str__(self) -> str:
        return self.tag


def pack_bits(bits: Any) -> bytes:
    """Pack a boolean array row-major, MSB-first, zero padding the last byte."""
    flat = np.asarray(bits, dtype=bool).reshape(-1)
    return np.packbits(flat).tobytes()


def hamming_distance(a: bytes, b: bytes) -> int:
    """Number of differing bits between two equal-length byte strings."""
    if len(a) != len(b):
        raise IncompatibleHashesError(
            f"Cannot compare hashes of different sizes ({len(a)} vs {len(b)} bytes)"
        )
    return (int.from_bytes(a, 'big') ^ int.from_bytes(b, 'big')).bit_count()


@dataclass(frozen=True)
class PerceptualHash:
    """
    Output of a hashing back-end.

    Attributes:
        data: Packed bit vector
        bit_length: Number of meaningful bits (size * size)
        algorithm: Descriptor of the algorithm that produced the hash
        source_dimensions: (width, height) of the image that was hashed
        computation_time_ms: Time spent computing the hash
    """
    data: bytes
    bit_length: int
    algorithm: HashAlgorithm
    source_dimensions: tuple[int, int] = (0, 0)
    computation_time_ms: int = 0

    def to_hex(self) -> str:
        """Lowercase hex, one digit per 4 bits (ceil(bit_length / 4) digits)."""
        return self.data.hex()[:math.ceil(self.bit_length / 4)]

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode('ascii')

    def to_bits(self) -> str:
        """Binary string of the meaningful bits, without padding."""
        return ''.join(f"{byte:08b}" for byte in self.data)[:self.bit_length]

    def to_u64(self) -> int:
        """First 64 bits as an unsigned integer, MSB-first, zero padded on the right."""
        return int.from_bytes(self.data[:8].ljust(8, b'\x00'), 'big')

    @classmethod
    def from_hex(cls, hex_string: str, algorithm: HashAlgorithm) -> 'PerceptualHash':
        """Rebuild a hash from its hex rendering (e.g. from a scan document)."""
        if len(hex_string) % 2:
            hex_string += '0'
        return cls(
            data=bytes.fromhex(hex_string),
            bit_length=algorithm.bit_length,
            algorithm=algorithm,
        )

    def is_comparable(self, other: 'PerceptualHash') -> bool:
        return self.algorithm == other.algorithm and len(self.data) == len(other.data)

    def distance(self, other: 'PerceptualHash') -> int:
        """Hamming distance; raises IncompatibleHashesError across algorithms."""
        if self.algorithm != other.algorithm:
            raise IncompatibleHashesError(
                f"Cannot compare hashes from different algorithms ({self.algorithm} vs {other.algorithm})"
            )
        return hamming_distance(self.data, other.data)

    def __sub__(self, other: 'PerceptualHash') -> int:
        return self.distance(other)

    def __str__(self) -> str:
        return (
            f"Hash({self.algorithm}, {self.bit_length} bits, "
            f"{self.computation_time_ms}ms): {self.to_hex()}"
        )


@dataclass(frozen=True)
class ComparisonResult:
    """Outcome of comparing two hashes against a threshold."""
    distance: int
    similarity_percentage: float
    is_similar: bool
    threshold_used: int
    algorithm: HashAlgorithm

    @classmethod
    def build(cls, distance: int, threshold: int, algorithm: HashAlgorithm) -> 'ComparisonResult':
        similarity = 100.0 * (1.0 - distance / algorithm.bit_length)
        return cls(
            distance=distance,
            similarity_percentage=max(0.0, similarity),
            is_similar=distance <= threshold,
            threshold_used=threshold,
            algorithm=algorithm,
        )


class PerceptualHashBackend(ABC):
    """
    Common contract for hashing back-ends.

    Subclasses reduce a decoded image to a square boolean grid in
    ``_compute_bits``; packing, timing and comparison live here. Instances
    are immutable after construction and safe to share between threads.
    """

    #: Human readable algorithm name
    display_name = ""
    #: Rough cost on a 1-10 scale (10 = heaviest)
    complexity = 5
    #: recommended_threshold == size // threshold_divisor
    threshold_divisor = 4

    def __init__(self, size: int):
        self._size = size

    @property
    @abstractmethod
    def algorithm(self) -> HashAlgorithm:
        """Descriptor of this back-end's algorithm."""

    @abstractmethod
    def _compute_bits(self, image: Image.Image) -> Any:
        """Return a (size, size) boolean array for the image."""

    @property
    def size(self) -> int:
        return self._size

    @property
    def algorithm_name(self) -> str:
        return self.display_name

    def parameters(self) -> dict[str, Any]:
        """Algorithm parameters recorded in scan_info."""
        return {'size': self._size}

    def generate_hash(self, image: Image.Image) -> PerceptualHash:
        """Compute the perceptual hash of a decoded image."""
        start = time.perf_counter()
        bits = self._compute_bits(image)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        return PerceptualHash(
            data=pack_bits(bits),
            bit_length=self.algorithm.bit_length,
            algorithm=self.algorithm,
            source_dimensions=(image.width, image.height),
            computation_time_ms=elapsed_ms,
        )

    def calculate_distance(self, hash1: PerceptualHash, hash2: PerceptualHash) -> int:
        return hash1.distance(hash2)

    def are_similar(self, hash1: PerceptualHash, hash2: PerceptualHash, threshold: int) -> bool:
        return self.calculate_distance(hash1, hash2) <= threshold

    def compare(self, hash1: PerceptualHash, hash2: PerceptualHash, threshold: int) -> ComparisonResult:
        distance = self.calculate_distance(hash1, hash2)
        return ComparisonResult.build(distance, threshold, self.algorithm)

    @property
    def recommended_threshold(self) -> int:
        return self._size // self.threshold_divisor

    @property
    def computational_complexity(self) -> int:
        return self.complexity

    def __repr__(self) -> str:
        params = ', '.join(f"{k}={v!r}" for k, v in self.parameters().items())
        return f"{type(self).__name__}({params})"


__all__ = [
    'HashKind',
    'HashAlgorithm',
    'PerceptualHash',
    'ComparisonResult',
    'PerceptualHashBackend',
    'pack_bits',
    'hamming_distance',
]

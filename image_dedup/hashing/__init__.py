"""
Hashing package for Image Dedup.

Provides the perceptual hash back-ends and their shared types.

Public API:
- HashAlgorithm / HashKind: Tagged algorithm descriptor
- PerceptualHash: Packed hash with hex/base64/binary renderings
- PerceptualHashBackend: Base class of all back-ends
- DctHasher, AverageHasher, DifferenceHasher: Built-in back-ends
- create_hasher: Build a back-end from an algorithm name and parameters
"""

from __future__ import annotations

from .base import (
    HashKind,
    HashAlgorithm,
    PerceptualHash,
    ComparisonResult,
    PerceptualHashBackend,
    pack_bits,
    hamming_distance,
)
from .average import AverageHasher
from .difference import DifferenceHasher
from .dct import DctHasher
from .factory import (
    HashSettings,
    available_algorithms,
    describe_algorithm,
    create_hasher,
    create_hasher_from_settings,
)

__all__ = [
    'HashKind',
    'HashAlgorithm',
    'PerceptualHash',
    'ComparisonResult',
    'PerceptualHashBackend',
    'pack_bits',
    'hamming_distance',
    'AverageHasher',
    'DifferenceHasher',
    'DctHasher',
    'HashSettings',
    'available_algorithms',
    'describe_algorithm',
    'create_hasher',
    'create_hasher_from_settings',
]

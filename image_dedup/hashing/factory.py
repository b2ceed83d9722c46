"""
Hash algorithm registry.

Maps algorithm names to hasher constructors, validates their parameters
and describes them for the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..config import (
    DEFAULT_ALGORITHM,
    DEFAULT_HASH_SIZE,
    DEFAULT_QUALITY_FACTOR,
    MAX_HASH_SIZE,
    MIN_HASH_SIZE,
)
from ..errors import ConfigurationError
from .average import AverageHasher
from .base import PerceptualHashBackend
from .dct import DctHasher
from .difference import DifferenceHasher


@dataclass
class HashSettings:
    """
    User-facing hash options.

    Attributes:
        algorithm: 'dct', 'average' or 'difference'
        size: Hash grid edge (1-64)
        quality_factor: DCT working grid scale in (0.0, 1.0]; ignored by other algorithms
    """
    algorithm: str = DEFAULT_ALGORITHM
    size: int = DEFAULT_HASH_SIZE
    quality_factor: float = DEFAULT_QUALITY_FACTOR

    def validate(self) -> None:
        if self.algorithm not in _REGISTRY:
            raise ConfigurationError(
                f"Unknown hash algorithm '{self.algorithm}'. "
                f"Available: {', '.join(available_algorithms())}"
            )
        validate_hash_size(self.size)
        if self.algorithm == 'dct':
            validate_quality_factor(self.quality_factor)

    def to_parameters(self) -> dict[str, Any]:
        if self.algorithm == 'dct':
            return {'size': self.size, 'quality_factor': self.quality_factor}
        return {'size': self.size}


def validate_hash_size(size: Any) -> None:
    if isinstance(size, bool) or not isinstance(size, int):
        raise ConfigurationError(f"Hash size must be an integer, got {size!r}")
    if not MIN_HASH_SIZE <= size <= MAX_HASH_SIZE:
        raise ConfigurationError(
            f"Hash size must be between {MIN_HASH_SIZE} and {MAX_HASH_SIZE}, got {size}"
        )


def validate_quality_factor(quality_factor: Any) -> None:
    try:
        value = float(quality_factor)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Quality factor must be a number, got {quality_factor!r}")
    if not 0.0 < value <= 1.0:
        raise ConfigurationError(f"Quality factor must be in (0.0, 1.0], got {value}")


@dataclass(frozen=True)
class AlgorithmInfo:
    """Registry entry for one algorithm."""
    name: str
    description: str
    parameters: tuple[str, ...]
    create: Callable[..., PerceptualHashBackend]


_REGISTRY: dict[str, AlgorithmInfo] = {
    'dct': AlgorithmInfo(
        name='dct',
        description=(
            "DCT (Discrete Cosine Transform) based perceptual hash. "
            "High accuracy but computationally expensive."
        ),
        parameters=('size', 'quality_factor'),
        create=lambda size, quality_factor=DEFAULT_QUALITY_FACTOR: DctHasher(size, quality_factor),
    ),
    'average': AlgorithmInfo(
        name='average',
        description="Average Hash - compares each pixel with the mean brightness. Fast.",
        parameters=('size',),
        create=lambda size, **_: AverageHasher(size),
    ),
    'difference': AlgorithmInfo(
        name='difference',
        description=(
            "Difference Hash - based on adjacent pixel differences. "
            "Good for detecting structural changes and edge patterns."
        ),
        parameters=('size',),
        create=lambda size, **_: DifferenceHasher(size),
    ),
}


def available_algorithms() -> list[str]:
    """Names of all registered algorithms."""
    return sorted(_REGISTRY)


def describe_algorithm(name: str) -> str:
    info = _REGISTRY.get(name)
    if info is None:
        raise ConfigurationError(f"Unknown hash algorithm '{name}'")
    return info.description


def create_hasher(
    algorithm: str = DEFAULT_ALGORITHM,
    parameters: Optional[dict[str, Any]] = None,
) -> PerceptualHashBackend:
    """
    Create a hashing back-end from an algorithm name and parameter dict.

    Args:
        algorithm: Registered algorithm name
        parameters: e.g. {'size': 8, 'quality_factor': 1.0}; missing keys use defaults

    Returns:
        A configured PerceptualHashBackend

    Raises:
        ConfigurationError: Unknown algorithm, unknown parameter or invalid value
    """
    params = dict(parameters or {})
    info = _REGISTRY.get(algorithm)
    if info is None:
        raise ConfigurationError(
            f"Unknown hash algorithm '{algorithm}'. "
            f"Available: {', '.join(available_algorithms())}"
        )

    unknown = set(params) - set(info.parameters)
    if unknown:
        raise ConfigurationError(
            f"Unknown parameter(s) for {algorithm}: {', '.join(sorted(unknown))}"
        )

    settings = HashSettings(
        algorithm=algorithm,
        size=params.get('size', DEFAULT_HASH_SIZE),
        quality_factor=params.get('quality_factor', DEFAULT_QUALITY_FACTOR),
    )
    settings.validate()
    return create_hasher_from_settings(settings)


def create_hasher_from_settings(settings: HashSettings) -> PerceptualHashBackend:
    """Create a hashing back-end from validated HashSettings."""
    settings.validate()
    info = _REGISTRY[settings.algorithm]
    return info.create(settings.size, quality_factor=float(settings.quality_factor))


__all__ = [
    'HashSettings',
    'AlgorithmInfo',
    'available_algorithms',
    'describe_algorithm',
    'create_hasher',
    'create_hasher_from_settings',
    'validate_hash_size',
    'validate_quality_factor',
]

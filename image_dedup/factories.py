"""
Engine construction.

EngineFactory wires concrete back-ends into a ProcessingEngine. Anything
that goes wrong while constructing a back-end surfaces as a
DependencyInjectionError naming the component.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from .errors import DependencyInjectionError
from .hashing import HashSettings, PerceptualHashBackend, create_hasher_from_settings
from .persistence import HashPersistence, StreamingJsonHashPersistence
from .pipeline import ProcessingConfig, ProcessingEngine
from .reporting import ConsoleProgressReporter, ProgressReporter
from .scanner import ImageLoaderBackend, LocalStorageBackend, StandardImageLoader, StorageBackend

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _construct(component: str, builder: Callable[[], T]) -> T:
    try:
        return builder()
    except Exception as e:
        raise DependencyInjectionError(f"Failed to create {component}: {e}") from e


class EngineFactory:
    """Builds ProcessingEngine instances from settings or ready-made back-ends."""

    @staticmethod
    def build(
        output_path: Optional[str | Path] = None,
        hash_settings: Optional[HashSettings] = None,
        config: Optional[ProcessingConfig] = None,
        max_dimension: Optional[int] = None,
        reporter: Optional[ProgressReporter] = None,
        loader: Optional[ImageLoaderBackend] = None,
        hasher: Optional[PerceptualHashBackend] = None,
        storage: Optional[StorageBackend] = None,
        persistence: Optional[HashPersistence] = None,
    ) -> ProcessingEngine:
        """
        Create an engine; any back-end not supplied is built from the settings.

        Args:
            output_path: Destination of the streaming JSON document (required
                unless ``persistence`` is given)
            hash_settings: Algorithm, size and quality factor for the hasher
            config: Pipeline configuration (defaults when omitted)
            max_dimension: Downscale limit for the standard loader
            reporter: Progress reporter (console reporter when omitted)
            loader, hasher, storage, persistence: Pre-built back-ends

        Raises:
            DependencyInjectionError: If a back-end cannot be constructed
        """
        settings = hash_settings or HashSettings()
        config = config or ProcessingConfig()

        if loader is None:
            loader = _construct("image loader", lambda: StandardImageLoader(max_dimension))
        if hasher is None:
            hasher = _construct("hasher", lambda: create_hasher_from_settings(settings))
        if storage is None:
            storage = _construct("storage backend", LocalStorageBackend)
        if persistence is None:
            if output_path is None:
                raise DependencyInjectionError(
                    "Failed to create persistence: an output path or persistence instance is required"
                )
            persistence = _construct(
                "persistence", lambda: StreamingJsonHashPersistence(output_path)
            )
        if reporter is None:
            reporter = ConsoleProgressReporter()

        logger.debug(
            f"Engine: loader={loader.strategy_name}, hasher={hasher!r}, "
            f"storage={type(storage).__name__}, persistence={type(persistence).__name__}"
        )
        return ProcessingEngine(
            loader=loader,
            hasher=hasher,
            storage=storage,
            config=config,
            reporter=reporter,
            persistence=persistence,
        )

    @staticmethod
    def describe(engine: ProcessingEngine) -> dict[str, Any]:
        """Summary of the components an engine was built with."""
        return {
            'loader': engine.loader.strategy_name,
            'max_dimension': engine.loader.max_dimension,
            'algorithm': engine.hasher.algorithm.name,
            'parameters': engine.hasher.parameters(),
            'storage': type(engine.storage).__name__,
            'persistence': type(engine.persistence).__name__,
            'reporter': type(engine.reporter).__name__,
            'config': engine.config.to_dict(),
        }


__all__ = ['EngineFactory']

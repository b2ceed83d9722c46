"""
Image Dedup
===========
Finds visually similar images by perceptual hashing.

Features:
- Concurrent scan pipeline with bounded memory and backpressure
- DCT, average and difference hashes with configurable size
- Streaming JSON hash document, finalized with an accurate file count
- Union-Find duplicate grouping over a finished scan
- CLI with user configuration file and environment overrides
"""

__version__ = "1.0.0"

from .errors import (
    ImageDedupError,
    ConfigurationError,
    FileDiscoveryError,
    ImageProcessingError,
    PersistenceError,
)
from .models import (
    ImageItem,
    ProcessingMetadata,
    ProcessingSuccess,
    ProcessingFailure,
    HashEntry,
    ScanInfo,
    ScanResult,
    ProcessingSummary,
    DuplicateFile,
    DuplicateGroup,
)
from .config import IMAGE_EXTENSIONS
from .hashing import (
    HashAlgorithm,
    PerceptualHash,
    PerceptualHashBackend,
    DctHasher,
    AverageHasher,
    DifferenceHasher,
    HashSettings,
    create_hasher,
)
from .scanner import LocalStorageBackend, StandardImageLoader, find_image_files
from .persistence import StreamingJsonHashPersistence, MemoryHashPersistence, load_scan_result
from .reporting import ConsoleProgressReporter, TqdmProgressReporter, NoOpProgressReporter
from .pipeline import ProcessingConfig, ProcessingEngine, EngineState
from .factories import EngineFactory
from .grouping import find_duplicate_groups, find_duplicates_in_scan

__all__ = [
    "ImageDedupError",
    "ConfigurationError",
    "FileDiscoveryError",
    "ImageProcessingError",
    "PersistenceError",
    "ImageItem",
    "ProcessingMetadata",
    "ProcessingSuccess",
    "ProcessingFailure",
    "HashEntry",
    "ScanInfo",
    "ScanResult",
    "ProcessingSummary",
    "DuplicateFile",
    "DuplicateGroup",
    "IMAGE_EXTENSIONS",
    "HashAlgorithm",
    "PerceptualHash",
    "PerceptualHashBackend",
    "DctHasher",
    "AverageHasher",
    "DifferenceHasher",
    "HashSettings",
    "create_hasher",
    "LocalStorageBackend",
    "StandardImageLoader",
    "find_image_files",
    "StreamingJsonHashPersistence",
    "MemoryHashPersistence",
    "load_scan_result",
    "ConsoleProgressReporter",
    "TqdmProgressReporter",
    "NoOpProgressReporter",
    "ProcessingConfig",
    "ProcessingEngine",
    "EngineState",
    "EngineFactory",
    "find_duplicate_groups",
    "find_duplicates_in_scan",
]

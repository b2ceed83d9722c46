"""
Data models for Image Dedup.

Contains dataclasses for discovered files, per-file processing results,
the persisted scan document, run summaries and duplicate groups.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union
import os


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable form."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024
    return f"{size_bytes:.1f} TB"


@dataclass(frozen=True)
class ImageItem:
    """
    A candidate file found by discovery.

    Attributes:
        id: Opaque identifier, sufficient to re-open the file (a path for local storage)
        name: Display name (the file name)
        size: Declared size in bytes at discovery time
        is_directory: True for directories (never emitted as candidates)
        extension: Lowercased extension without the dot, or None
    """
    id: str
    name: str
    size: int = 0
    is_directory: bool = False
    extension: Optional[str] = None

    @property
    def directory(self) -> str:
        """Return the directory containing this item."""
        return os.path.dirname(self.id)


@dataclass
class ProcessingMetadata:
    """Per-file audit data stored with every successful hash."""
    file_size: int
    processing_time_ms: int
    image_dimensions: tuple[int, int]
    was_resized: bool

    @property
    def file_size_formatted(self) -> str:
        """Return human-readable file size."""
        return format_size(self.file_size)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'file_size': self.file_size,
            'processing_time_ms': self.processing_time_ms,
            'image_dimensions': [self.image_dimensions[0], self.image_dimensions[1]],
            'was_resized': self.was_resized,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProcessingMetadata':
        """Create ProcessingMetadata from dictionary."""
        width, height = data.get('image_dimensions', (0, 0))
        return cls(
            file_size=data.get('file_size', 0),
            processing_time_ms=data.get('processing_time_ms', 0),
            image_dimensions=(int(width), int(height)),
            was_resized=bool(data.get('was_resized', False)),
        )


@dataclass
class ProcessingSuccess:
    """
    A file that was decoded and hashed.

    Attributes:
        file_path: Identifier of the source file
        hash: Lowercase hex rendering of the full hash
        algorithm: Algorithm tag, e.g. 'dct-8'
        hash_bits: First 64 bits of the hash as an unsigned integer, MSB-first
        metadata: Processing metadata for the file
    """
    file_path: str
    hash: str
    algorithm: str
    hash_bits: int
    metadata: ProcessingMetadata

    is_success = True


@dataclass
class ProcessingFailure:
    """A file that could not be processed."""
    file_path: str
    error: str

    is_success = False


ProcessingOutcome = Union[ProcessingSuccess, ProcessingFailure]


@dataclass
class HashEntry:
    """One element of the persisted ``images`` array."""
    file_path: str
    hash: str
    hash_bits: int
    metadata: ProcessingMetadata

    @classmethod
    def from_outcome(cls, outcome: ProcessingSuccess) -> 'HashEntry':
        return cls(
            file_path=outcome.file_path,
            hash=outcome.hash,
            hash_bits=outcome.hash_bits,
            metadata=outcome.metadata,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'file_path': self.file_path,
            'hash': self.hash,
            'hash_bits': self.hash_bits,
            'metadata': self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'HashEntry':
        """Create HashEntry from dictionary."""
        return cls(
            file_path=data['file_path'],
            hash=data['hash'],
            hash_bits=int(data.get('hash_bits', 0)),
            metadata=ProcessingMetadata.from_dict(data.get('metadata', {})),
        )


@dataclass
class ScanInfo:
    """
    Header of the persisted scan document.

    Attributes:
        algorithm: Algorithm name ('dct', 'average' or 'difference')
        parameters: Algorithm parameters, e.g. {'size': 8, 'quality_factor': 1.0}
        timestamp: RFC 3339 UTC timestamp of the run start
        total_files: Number of persisted entries (patched in at finalization)
    """
    algorithm: str
    parameters: dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    total_files: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'algorithm': self.algorithm,
            'parameters': self.parameters,
            'timestamp': self.timestamp,
            'total_files': self.total_files,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ScanInfo':
        """Create ScanInfo from dictionary."""
        return cls(
            algorithm=data.get('algorithm', ''),
            parameters=data.get('parameters') or {},
            timestamp=data.get('timestamp', ''),
            total_files=int(data.get('total_files', 0)),
        )


@dataclass
class ScanResult:
    """A complete scan document as read back from disk."""
    scan_info: ScanInfo
    images: list[HashEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> 'ScanResult':
        """Create ScanResult from dictionary."""
        return cls(
            scan_info=ScanInfo.from_dict(data.get('scan_info') or {}),
            images=[HashEntry.from_dict(entry) for entry in data.get('images', [])],
        )


@dataclass
class ProcessingSummary:
    """End-of-run statistics returned by the engine."""
    total_files: int = 0
    processed_files: int = 0
    error_count: int = 0
    total_processing_time_ms: int = 0
    average_time_per_file_ms: float = 0.0

    @property
    def success_rate(self) -> float:
        """Percentage of discovered files that were hashed."""
        if self.total_files == 0:
            return 0.0
        return 100.0 * self.processed_files / self.total_files

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'total_files': self.total_files,
            'processed_files': self.processed_files,
            'error_count': self.error_count,
            'total_processing_time_ms': self.total_processing_time_ms,
            'average_time_per_file_ms': round(self.average_time_per_file_ms, 3),
        }


@dataclass
class DuplicateFile:
    """A member of a duplicate group and its distance to the group's first file."""
    file_path: str
    hash: str
    distance: int = 0

    def to_dict(self) -> dict:
        return {
            'file_path': self.file_path,
            'hash': self.hash,
            'distance': self.distance,
        }


@dataclass
class DuplicateGroup:
    """
    A group of visually similar images.

    Attributes:
        group_id: Identifier of this group (0-based)
        files: Members of the group; the first one is the reference file
    """
    group_id: int
    files: list[DuplicateFile] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        """Number of files in this group."""
        return len(self.files)

    @property
    def duplicates(self) -> list[DuplicateFile]:
        """Returns all files except the reference one."""
        return self.files[1:]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'group_id': self.group_id,
            'files': [f.to_dict() for f in self.files],
        }

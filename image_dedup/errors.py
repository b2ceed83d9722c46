"""
Error types for the Image Dedup scan pipeline.

Every error raised by the package derives from ImageDedupError. Only
per-file processing errors are recoverable: they are contained at the
worker boundary and reported, everything else aborts the run.
"""

from __future__ import annotations

from typing import Optional


class ImageDedupError(Exception):
    """Base class for all Image Dedup errors."""

    recoverable = False


class FileDiscoveryError(ImageDedupError):
    """The scan root could not be opened or enumerated."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = str(path)
        self.cause = cause
        message = f"Cannot enumerate {self.path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class ConfigurationError(ImageDedupError):
    """An option value is out of range or otherwise invalid."""


class ChannelError(ImageDedupError):
    """An internal channel was closed unexpectedly."""


class ChannelClosed(ChannelError):
    """Raised to a sender when the receiving side has gone away."""


class TaskError(ImageDedupError):
    """A pipeline thread (producer, worker or collector) crashed."""

    def __init__(self, task: str, cause: BaseException):
        self.task = task
        self.cause = cause
        super().__init__(f"{task} failed: {cause!r}")


class ScanCancelled(ImageDedupError):
    """The run was cancelled before the result stream ended."""


class ImageProcessingError(ImageDedupError):
    """A single file could not be decoded or hashed."""

    recoverable = True

    def __init__(self, file_path: str, cause: Optional[BaseException] = None, message: str = ""):
        self.file_path = str(file_path)
        self.cause = cause
        detail = message or (str(cause) if cause is not None else "processing failed")
        super().__init__(f"{self.file_path}: {detail}")


class ImageDecodeError(ImageProcessingError):
    """The image loader could not decode the file or byte buffer."""


class PersistenceError(ImageDedupError):
    """The hash document could not be written or finalized."""


class DependencyInjectionError(ImageDedupError):
    """A back-end could not be constructed."""


class IncompatibleHashesError(ImageDedupError, ValueError):
    """Two hashes from different algorithms or sizes were compared."""


__all__ = [
    'ImageDedupError',
    'FileDiscoveryError',
    'ConfigurationError',
    'ChannelError',
    'ChannelClosed',
    'TaskError',
    'ScanCancelled',
    'ImageProcessingError',
    'ImageDecodeError',
    'PersistenceError',
    'DependencyInjectionError',
    'IncompatibleHashesError',
]

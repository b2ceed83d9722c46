"""
Hash persistence sinks.

The streaming JSON sink writes the scan document incrementally so memory
stays bounded by one batch:

    {
      "scan_info": {...},
      "images": [
        {...},
        {...}
      ]
    }

The header is written with ``total_files`` = 0 and patched once the stream
is closed. ``finalize()`` is idempotent.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence, TextIO

from .errors import PersistenceError
from .models import HashEntry, ProcessingSuccess, ScanInfo, ScanResult

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current time as an RFC 3339 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()


def _indent_json(value: Any, prefix: str) -> str:
    """Pretty-print ``value`` with every line after the first shifted by ``prefix``."""
    return json.dumps(value, indent=2).replace('\n', '\n' + prefix)


class HashPersistence(ABC):
    """Destination of successful results."""

    @abstractmethod
    def set_scan_info(self, algorithm: str, parameters: dict[str, Any]) -> None:
        """Record the header; must be called before the first batch."""

    @abstractmethod
    def store_batch(self, batch: Sequence[ProcessingSuccess]) -> None:
        """Persist a batch of successes, in order."""

    @abstractmethod
    def finalize(self) -> None:
        """Close the document. Calling it again is a no-op."""

    def close(self) -> None:
        """Release resources without finalizing (used when a run fails)."""


class StreamingJsonHashPersistence(HashPersistence):
    """
    Writes the scan document to ``output_path`` as results arrive.

    All writes go through one lock, so a batch's bytes are contiguous in the
    file even if several threads store batches.
    """

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self._lock = threading.Lock()
        self._file: Optional[TextIO] = None
        self._scan_info: Optional[ScanInfo] = None
        self._entries_written = 0
        # Header on disk / closing brackets on disk
        self._started = False
        self._array_closed = False
        self._finalized = False

    @property
    def entries_written(self) -> int:
        return self._entries_written

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @property
    def scan_info(self) -> Optional[ScanInfo]:
        return self._scan_info

    def set_scan_info(self, algorithm: str, parameters: dict[str, Any]) -> None:
        with self._lock:
            if self._started or self._finalized:
                raise PersistenceError("scan info cannot change once writing has started")
            self._scan_info = ScanInfo(
                algorithm=algorithm,
                parameters=dict(parameters),
                timestamp=utc_timestamp(),
                total_files=0,
            )

    def _open(self) -> None:
        """
        Get a writable handle positioned after the last entry.

        The header is written only once; a document whose handle was closed
        early (failed or cancelled run) is reopened for appending.
        """
        if self._file is not None:
            return
        if self._started:
            try:
                self._file = open(self.output_path, 'a', encoding='utf-8')
            except OSError as e:
                raise PersistenceError(f"Cannot reopen {self.output_path}: {e}") from e
            logger.debug(f"Reopened hash document {self.output_path}")
            return

        if self._scan_info is None:
            raise PersistenceError("set_scan_info() must be called before writing")
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.output_path, 'w', encoding='utf-8')
            self._file.write('{\n  "scan_info": ')
            self._file.write(_indent_json(self._scan_info.to_dict(), '  '))
            self._file.write(',\n  "images": [\n')
        except OSError as e:
            self._discard_handle()
            raise PersistenceError(f"Cannot open {self.output_path}: {e}") from e
        self._started = True
        logger.debug(f"Opened hash document {self.output_path}")

    def store_batch(self, batch: Sequence[ProcessingSuccess]) -> None:
        with self._lock:
            if self._finalized:
                raise PersistenceError("store_batch() called after finalize()")
            if not batch:
                return
            if self._array_closed:
                raise PersistenceError("store_batch() called after the images array was closed")
            self._open()
            try:
                for outcome in batch:
                    if self._entries_written > 0:
                        self._file.write(',\n')
                    entry = HashEntry.from_outcome(outcome).to_dict()
                    self._file.write('    ' + _indent_json(entry, '    '))
                    self._entries_written += 1
                self._file.flush()
            except (OSError, TypeError, ValueError) as e:
                raise PersistenceError(f"Failed writing to {self.output_path}: {e}") from e

    def finalize(self) -> None:
        with self._lock:
            if self._finalized:
                logger.debug(f"{self.output_path} already finalized")
                return
            # A retry after a failed header patch only redoes the patch
            if not self._array_closed:
                self._open()
                try:
                    self._file.write('\n  ]\n}')
                    self._file.flush()
                    self._file.close()
                except OSError as e:
                    raise PersistenceError(f"Failed closing {self.output_path}: {e}") from e
                finally:
                    self._file = None
                self._array_closed = True

            self._patch_total_files()
            self._finalized = True
            logger.debug(f"Finalized {self.output_path} with {self._entries_written} entries")

    def _patch_total_files(self) -> None:
        """Second pass: re-read the document and fill in scan_info.total_files."""
        temp_path = self.output_path.with_name(self.output_path.name + '.tmp')
        try:
            with open(self.output_path, 'r', encoding='utf-8') as f:
                document = json.load(f)
            document['scan_info']['total_files'] = self._entries_written
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
            os.replace(temp_path, self.output_path)
        except (OSError, ValueError, KeyError) as e:
            raise PersistenceError(f"Failed to patch header of {self.output_path}: {e}") from e
        self._scan_info.total_files = self._entries_written

    def _discard_handle(self) -> None:
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                logger.warning(f"Error closing {self.output_path}: {e}")
            self._file = None

    def close(self) -> None:
        with self._lock:
            self._discard_handle()


class MemoryHashPersistence(HashPersistence):
    """Keeps entries in memory; useful for tests and embedding."""

    def __init__(self):
        self._lock = threading.Lock()
        self.scan_info: Optional[ScanInfo] = None
        self.entries: list[HashEntry] = []
        self.batch_sizes: list[int] = []
        self.finalize_calls = 0
        self._finalized = False

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def set_scan_info(self, algorithm: str, parameters: dict[str, Any]) -> None:
        with self._lock:
            self.scan_info = ScanInfo(
                algorithm=algorithm,
                parameters=dict(parameters),
                timestamp=utc_timestamp(),
            )

    def store_batch(self, batch: Sequence[ProcessingSuccess]) -> None:
        with self._lock:
            if self._finalized:
                raise PersistenceError("store_batch() called after finalize()")
            self.entries.extend(HashEntry.from_outcome(outcome) for outcome in batch)
            self.batch_sizes.append(len(batch))

    def finalize(self) -> None:
        with self._lock:
            self.finalize_calls += 1
            if self._finalized:
                return
            if self.scan_info is not None:
                self.scan_info.total_files = len(self.entries)
            self._finalized = True

    def to_result(self) -> ScanResult:
        return ScanResult(
            scan_info=self.scan_info or ScanInfo(algorithm=''),
            images=list(self.entries),
        )


def load_scan_result(path: str | Path) -> ScanResult:
    """
    Read a finished scan document.

    Raises:
        PersistenceError: If the file is missing or is not a scan document
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(f"Cannot read hash document {path}: {e}") from e

    if not isinstance(data, dict) or 'images' not in data:
        raise PersistenceError(f"{path} is not a hash document")
    try:
        return ScanResult.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"Malformed hash document {path}: {e}") from e


__all__ = [
    'HashPersistence',
    'StreamingJsonHashPersistence',
    'MemoryHashPersistence',
    'load_scan_result',
    'utc_timestamp',
]

"""
Progress and error reporting for the scan pipeline.

The collector decides when to report (throttling lives there); reporters
only decide how. Errors are always reported, even when progress reporting
is disabled.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressReporter(ABC):
    """Receives scan lifecycle events."""

    @abstractmethod
    def report_started(self, total_files: int) -> None:
        """Called once discovery has produced the candidate list."""

    @abstractmethod
    def report_progress(self, completed: int, total: int) -> None:
        """Called periodically with the number of finished files."""

    @abstractmethod
    def report_error(self, file_path: str, error: str) -> None:
        """Called once per file that could not be processed."""

    @abstractmethod
    def report_completed(self, total_processed: int, total_errors: int) -> None:
        """Called once after the last result has been collected."""

    def report_warning(self, message: str) -> None:
        """Non-fatal problems outside the result stream (e.g. skipped entries)."""
        logger.warning(message)


class ConsoleProgressReporter(ProgressReporter):
    """Logs progress through the standard logging module."""

    def __init__(self, quiet: bool = False, log: Optional[logging.Logger] = None):
        self.quiet = quiet
        self._log = log or logger

    def report_started(self, total_files: int) -> None:
        if not self.quiet:
            self._log.info(f"Starting processing {total_files:,} files...")

    def report_progress(self, completed: int, total: int) -> None:
        if self.quiet:
            return
        percentage = (completed / total * 100.0) if total else 100.0
        self._log.info(f"Progress: {completed:,}/{total:,} ({percentage:.1f}%)")

    def report_error(self, file_path: str, error: str) -> None:
        if not self.quiet:
            self._log.error(f"Error processing {file_path}: {error}")

    def report_completed(self, total_processed: int, total_errors: int) -> None:
        if not self.quiet:
            self._log.info(
                f"Completed! Processed: {total_processed:,}, Errors: {total_errors:,}"
            )

    def report_warning(self, message: str) -> None:
        if not self.quiet:
            self._log.warning(message)


class TqdmProgressReporter(ProgressReporter):
    """Shows a tqdm progress bar; errors are written above the bar."""

    def __init__(self, desc: str = "Hashing images", **tqdm_kwargs: Any):
        self._desc = desc
        self._tqdm_kwargs = {'unit': 'img', 'ncols': 80, **tqdm_kwargs}
        self._pbar: Optional[tqdm] = None
        self._last = 0

    def report_started(self, total_files: int) -> None:
        self._close()
        self._pbar = tqdm(total=total_files, desc=self._desc, **self._tqdm_kwargs)
        self._last = 0

    def report_progress(self, completed: int, total: int) -> None:
        if self._pbar is None:
            return
        if completed > self._last:
            self._pbar.update(completed - self._last)
            self._last = completed

    def report_error(self, file_path: str, error: str) -> None:
        tqdm.write(f"Error processing {file_path}: {error}")

    def report_completed(self, total_processed: int, total_errors: int) -> None:
        self._close()
        tqdm.write(f"Completed! Processed: {total_processed:,}, Errors: {total_errors:,}")

    def report_warning(self, message: str) -> None:
        tqdm.write(f"Warning: {message}")

    def _close(self) -> None:
        if self._pbar is not None:
            self._pbar.close()
            self._pbar = None


class NoOpProgressReporter(ProgressReporter):
    """Discards every event (tests, benchmarks, embedding)."""

    def report_started(self, total_files: int) -> None:
        pass

    def report_progress(self, completed: int, total: int) -> None:
        pass

    def report_error(self, file_path: str, error: str) -> None:
        pass

    def report_completed(self, total_processed: int, total_errors: int) -> None:
        pass

    def report_warning(self, message: str) -> None:
        pass


def should_report_progress(completed: int, total: int, interval: int) -> bool:
    """Throttle: every ``interval`` completions, plus the final one."""
    return completed == total or (interval > 0 and completed % interval == 0)


__all__ = [
    'ProgressReporter',
    'ConsoleProgressReporter',
    'TqdmProgressReporter',
    'NoOpProgressReporter',
    'should_report_progress',
]

"""
Collector stage: drains outcomes, batches successes into the persistence
sink, forwards errors to the reporter and keeps the run counters.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..config import PROGRESS_REPORT_INTERVAL
from ..models import ProcessingOutcome, ProcessingSuccess, ProcessingSummary
from ..persistence import HashPersistence
from ..reporting import ProgressReporter, should_report_progress
from .channel import BoundedChannel, PipelineStats

logger = logging.getLogger(__name__)


class Collector:
    """
    Owns the receiving end of the result channel.

    ``collect()`` runs until every worker has closed its sender and flushes
    the last partial batch; ``finish()`` finalizes the sink and builds the
    summary. The engine calls them separately so a crashed worker can stop
    the run before anything is finalized.
    """

    def __init__(
        self,
        channel: BoundedChannel,
        persistence: HashPersistence,
        reporter: ProgressReporter,
        batch_size: int,
        total_files: int,
        enable_progress_reporting: bool = True,
        progress_interval: int = PROGRESS_REPORT_INTERVAL,
        stats: Optional[PipelineStats] = None,
    ):
        self._channel = channel
        self._persistence = persistence
        self._reporter = reporter
        self._batch_size = batch_size
        self._total_files = total_files
        self._report_progress = enable_progress_reporting
        self._progress_interval = progress_interval
        self._stats = stats or PipelineStats()
        self._batch: list[ProcessingSuccess] = []
        self.processed = 0
        self.errors = 0

    @property
    def completed(self) -> int:
        return self.processed + self.errors

    def collect(self) -> None:
        """Consume the result channel to exhaustion, then flush."""
        for outcome in self._channel:
            self.handle(outcome)
        self.flush()

    def handle(self, outcome: ProcessingOutcome) -> None:
        if outcome.is_success:
            self._batch.append(outcome)
            self.processed += 1
            if len(self._batch) >= self._batch_size:
                self.flush()
        else:
            self.errors += 1
            self._reporter.report_error(outcome.file_path, outcome.error)

        if self._report_progress and should_report_progress(
            self.completed, self._total_files, self._progress_interval
        ):
            self._reporter.report_progress(self.completed, self._total_files)

    def flush(self) -> None:
        """Hand the pending batch to the sink."""
        if not self._batch:
            return
        batch, self._batch = self._batch, []
        self._persistence.store_batch(batch)
        self._stats.batches_written += 1
        logger.debug(f"Flushed batch of {len(batch)} entries")

    def finish(self, started_at: float) -> ProcessingSummary:
        """
        Flush, finalize the sink and report completion.

        Args:
            started_at: ``time.perf_counter()`` value taken when the run began
        """
        self.flush()
        self._persistence.finalize()

        if self._report_progress:
            self._reporter.report_completed(self.processed, self.errors)

        total_ms = int((time.perf_counter() - started_at) * 1000)
        average = total_ms / self._total_files if self._total_files else 0.0
        return ProcessingSummary(
            total_files=self._total_files,
            processed_files=self.processed,
            error_count=self.errors,
            total_processing_time_ms=total_ms,
            average_time_per_file_ms=average,
        )


__all__ = ['Collector']

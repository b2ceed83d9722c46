"""
Processing engine: runs one scan from discovery to a finalized document.

Stages and threads:

    discovery (caller) -> Producer (thread) -> [work channel]
        -> WorkerPool (executor threads) -> [result channel]
        -> Collector (caller) -> persistence sink

An engine is single shot: construct, call process_directory() once, drop.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Optional

from ..errors import (
    ConfigurationError,
    FileDiscoveryError,
    ImageDedupError,
    PersistenceError,
    ScanCancelled,
    TaskError,
)
from ..hashing import PerceptualHashBackend
from ..models import ProcessingSummary
from ..persistence import HashPersistence
from ..reporting import ProgressReporter
from ..scanner import (
    ImageLoaderBackend,
    StorageBackend,
    discover_image_files,
    process_single_file,
)
from .channel import BoundedChannel, PipelineStats
from .collector import Collector
from .config import ProcessingConfig
from .producer import Producer
from .workers import ProcessFn, WorkerPool

logger = logging.getLogger(__name__)


class EngineState(Enum):
    IDLE = 'idle'
    DISCOVERING = 'discovering'
    RUNNING = 'running'
    DRAINING = 'draining'
    FINALIZING = 'finalizing'
    DONE = 'done'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        return self in (EngineState.DONE, EngineState.FAILED)


class ProcessingEngine:
    """
    Scan pipeline over interchangeable back-ends.

    Args:
        loader: Decodes images
        hasher: Computes perceptual hashes
        storage: Enumerates the input root
        config: Pipeline tuning
        reporter: Receives progress and per-file errors
        persistence: Receives batches of successes
    """

    def __init__(
        self,
        loader: ImageLoaderBackend,
        hasher: PerceptualHashBackend,
        storage: StorageBackend,
        config: ProcessingConfig,
        reporter: ProgressReporter,
        persistence: HashPersistence,
        process: Optional[ProcessFn] = None,
    ):
        self.loader = loader
        self.hasher = hasher
        self.storage = storage
        self.config = config
        self.reporter = reporter
        self.persistence = persistence
        self._process = process
        self._state = EngineState.IDLE
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._work: Optional[BoundedChannel] = None
        self.pipeline_stats: Optional[PipelineStats] = None
        self.collector: Optional[Collector] = None
        self.error: Optional[BaseException] = None

    @property
    def state(self) -> EngineState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: EngineState) -> None:
        with self._state_lock:
            if self._state.is_terminal:
                return
            logger.debug(f"Engine state {self._state.value} -> {state.value}")
            self._state = state

    def _fail(self, error: BaseException) -> None:
        self.error = error
        self._set_state(EngineState.FAILED)

    def cancel(self) -> None:
        """
        Stop feeding new files. Workers finish their current file, collected
        results are flushed and the run raises ScanCancelled unless every
        file had already been collected. The document is left unfinalized;
        calling finalize() on the sink afterwards closes it with the entries
        written so far.
        """
        self._cancel.set()
        work = self._work
        if work is not None:
            work.close_receiver()

    def process_directory(self, directory: str | Path) -> ProcessingSummary:
        """
        Hash every image below ``directory`` and persist the results.

        Returns:
            ProcessingSummary for the run

        Raises:
            ConfigurationError: Invalid config; nothing is opened
            FileDiscoveryError: The root cannot be enumerated
            TaskError: A pipeline thread crashed
            PersistenceError: The sink could not be written or finalized
            ScanCancelled: cancel() was called during the run
        """
        with self._state_lock:
            if self._state is not EngineState.IDLE:
                raise ImageDedupError("ProcessingEngine is single-shot; create a new engine")

        try:
            self.config.validate()
        except ConfigurationError as e:
            self._fail(e)
            raise

        started_at = time.perf_counter()
        self._set_state(EngineState.DISCOVERING)
        logger.info(f"Scanning directory: {directory}")

        try:
            items = discover_image_files(self.storage, directory, self.reporter.report_warning)
        except FileDiscoveryError as e:
            self._fail(e)
            raise

        total = len(items)
        logger.info(f"Found {total:,} image files")
        if self.config.enable_progress_reporting:
            self.reporter.report_started(total)

        try:
            self.persistence.set_scan_info(self.hasher.algorithm.name, self.hasher.parameters())
        except ImageDedupError as e:
            self._fail(e)
            raise
        return self._run_pipeline([item.id for item in items], started_at)

    def _salvage_batch(self, collector: Collector, cause: BaseException) -> None:
        """Best-effort flush of collected successes before the sink is closed."""
        if isinstance(cause, PersistenceError):
            return
        try:
            collector.flush()
        except PersistenceError as e:
            logger.warning(f"Could not flush pending results after failure: {e}")

    def _run_pipeline(self, identifiers: list[str], started_at: float) -> ProcessingSummary:
        config = self.config
        worker_count = config.effective_worker_count
        stats = PipelineStats()
        self.pipeline_stats = stats

        work = BoundedChannel(config.channel_buffer_size, senders=1, name="work")
        results = BoundedChannel(config.channel_buffer_size, senders=worker_count, name="results")
        self._work = work

        producer = Producer(
            identifiers,
            work,
            on_finished=lambda: self._set_state(EngineState.DRAINING),
        )
        pool = WorkerPool(
            self.loader,
            self.hasher,
            work,
            results,
            max_concurrent_tasks=config.max_concurrent_tasks,
            worker_count=worker_count,
            stats=stats,
            process=self._process or process_single_file,
        )
        collector = Collector(
            results,
            self.persistence,
            self.reporter,
            batch_size=config.batch_size,
            total_files=len(identifiers),
            enable_progress_reporting=config.enable_progress_reporting,
            stats=stats,
        )
        self.collector = collector

        self._set_state(EngineState.RUNNING)
        if self._cancel.is_set():
            work.close_receiver()
        producer.start()
        pool.start()

        try:
            collector.collect()
            producer.join()
            pool.join()
            # A cancel that lands after the last result changes nothing
            if self._cancel.is_set() and collector.completed < len(identifiers):
                raise ScanCancelled(
                    f"Scan cancelled after {collector.completed:,} of {len(identifiers):,} files"
                )
        except BaseException as e:
            results.close_receiver()
            work.close_receiver()
            producer.join(raise_errors=False)
            pool.join(raise_errors=False)
            stats.record_channels(work, results)
            self._salvage_batch(collector, e)
            self.persistence.close()
            error = e
            if isinstance(e, Exception) and not isinstance(e, ImageDedupError):
                error = TaskError("collector", e)
            self._fail(error)
            if error is e:
                raise
            raise error from e

        stats.record_channels(work, results)
        self._set_state(EngineState.FINALIZING)

        try:
            summary = collector.finish(started_at)
            # Second call is a no-op on a finalized sink
            self.persistence.finalize()
        except ImageDedupError as e:
            self._fail(e)
            raise
        except Exception as e:
            error = TaskError("collector", e)
            self._fail(error)
            raise error from e

        self._set_state(EngineState.DONE)
        logger.info(
            f"Scan complete: {summary.processed_files:,} hashed, "
            f"{summary.error_count:,} errors in {summary.total_processing_time_ms:,} ms"
        )
        return summary


__all__ = ['ProcessingEngine', 'EngineState']

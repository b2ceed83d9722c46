"""
Worker pool stage.

Each worker loop takes an identifier from the work channel, acquires a
permit from the shared semaphore, runs the single-file pipeline and sends
the outcome to the result channel. The loops run inside a
ThreadPoolExecutor whose threads double as the blocking executor for
decode and hash.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from ..errors import ChannelClosed, TaskError
from ..hashing import PerceptualHashBackend
from ..models import ProcessingOutcome
from ..scanner import ImageLoaderBackend, process_single_file
from .channel import BoundedChannel, PipelineStats

logger = logging.getLogger(__name__)

ProcessFn = Callable[[ImageLoaderBackend, PerceptualHashBackend, str], ProcessingOutcome]


class WorkerPool:
    """
    A fixed pool of worker loops sharing one work channel.

    Args:
        loader: Image loader shared by every worker
        hasher: Hash back-end shared by every worker
        work_channel: Source of file identifiers
        result_channel: Destination of outcomes; must count one sender per worker
        max_concurrent_tasks: Semaphore capacity for in-flight decode+hash
        worker_count: Number of loops (defaults to max_concurrent_tasks)
        stats: Optional stats object receiving in-flight observations
        process: Single-file function, replaceable for instrumentation
    """

    def __init__(
        self,
        loader: ImageLoaderBackend,
        hasher: PerceptualHashBackend,
        work_channel: BoundedChannel,
        result_channel: BoundedChannel,
        max_concurrent_tasks: int,
        worker_count: Optional[int] = None,
        stats: Optional[PipelineStats] = None,
        process: ProcessFn = process_single_file,
    ):
        self._loader = loader
        self._hasher = hasher
        self._work = work_channel
        self._results = result_channel
        self._semaphore = threading.BoundedSemaphore(max_concurrent_tasks)
        self.worker_count = worker_count or max_concurrent_tasks
        self._stats = stats or PipelineStats()
        self._process = process
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: list[Future] = []

    def start(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=self.worker_count,
            thread_name_prefix="image-dedup-worker",
        )
        self._futures = [
            self._executor.submit(self._worker_loop, index)
            for index in range(self.worker_count)
        ]

    def _worker_loop(self, index: int) -> int:
        handled = 0
        try:
            while True:
                file_path = self._work.recv()
                if file_path is None:
                    break

                with self._semaphore:
                    self._stats.task_started()
                    try:
                        outcome = self._process(self._loader, self._hasher, file_path)
                    finally:
                        self._stats.task_finished()

                    try:
                        self._results.send(outcome)
                    except ChannelClosed:
                        logger.debug(f"Worker {index}: result channel closed, exiting")
                        break
                handled += 1
        except BaseException:
            # Stop the producer and the other workers; the error surfaces on join
            self._work.close_receiver()
            raise
        finally:
            self._results.close_sender()
        return handled

    def join(self, raise_errors: bool = True) -> int:
        """
        Wait for every worker loop to exit.

        Returns:
            Total number of outcomes sent

        Raises:
            TaskError: For the first worker that crashed, if ``raise_errors``
        """
        handled = 0
        first_error: Optional[TaskError] = None
        for index, future in enumerate(self._futures):
            error = future.exception()
            if error is None:
                handled += future.result()
            elif first_error is None:
                first_error = TaskError(f"worker-{index}", error)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if raise_errors and first_error is not None:
            raise first_error from first_error.cause
        return handled


__all__ = ['WorkerPool', 'ProcessFn']

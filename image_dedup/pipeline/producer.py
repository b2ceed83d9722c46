"""
Producer stage: feeds discovered identifiers into the work channel.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from ..errors import ChannelClosed, TaskError
from .channel import BoundedChannel

logger = logging.getLogger(__name__)


class Producer:
    """
    Pushes identifiers into a bounded work channel on its own thread.

    ``send`` blocks while the channel is full, which is what throttles
    discovery output to the speed of the workers. If the receiving side
    goes away the producer stops quietly. The sender end is always closed
    on exit.
    """

    def __init__(
        self,
        identifiers: Iterable[str],
        channel: BoundedChannel,
        on_finished: Optional[Callable[[], None]] = None,
    ):
        self._identifiers = identifiers
        self._channel = channel
        self._on_finished = on_finished
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self.sent = 0
        self.stopped_early = False

    def run(self) -> int:
        """Send every identifier; returns how many were enqueued."""
        try:
            for identifier in self._identifiers:
                try:
                    self._channel.send(identifier)
                except ChannelClosed:
                    logger.debug("Work channel closed by receiver; producer stopping")
                    self.stopped_early = True
                    break
                self.sent += 1
        finally:
            self._channel.close_sender()
            if self._on_finished is not None:
                self._on_finished()
        return self.sent

    def _run_captured(self) -> None:
        try:
            self.run()
        except BaseException as e:
            logger.debug(f"Producer crashed: {e!r}")
            self._error = e

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run_captured,
            name="image-dedup-producer",
            daemon=True,
        )
        self._thread.start()

    def join(self, raise_errors: bool = True) -> None:
        """
        Wait for the producer thread.

        Raises:
            TaskError: If the producer crashed and ``raise_errors`` is set
        """
        if self._thread is not None:
            self._thread.join()
        if raise_errors and self._error is not None:
            raise TaskError("producer", self._error) from self._error

    @property
    def error(self) -> Optional[BaseException]:
        return self._error


__all__ = ['Producer']

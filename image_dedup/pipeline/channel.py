"""
Bounded channels and pipeline instrumentation.

A BoundedChannel is a FIFO shared between threads. Senders block while it
is full, receivers block while it is empty. It closes from either side:

- every sender calls ``close_sender()`` when done; once the last one has,
  ``recv()`` drains the remaining items and then returns None
- the receiving side calls ``close_receiver()`` to abandon the channel;
  blocked and future ``send()`` calls raise ChannelClosed and ``recv()``
  returns None immediately
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import ChannelClosed, ChannelError


class BoundedChannel:
    """Blocking multi-producer, multi-consumer queue with a fixed capacity."""

    def __init__(self, capacity: int, senders: int = 1, name: str = "channel"):
        if capacity < 1:
            raise ChannelError(f"{name}: capacity must be >= 1, got {capacity}")
        if senders < 1:
            raise ChannelError(f"{name}: at least one sender is required")
        self.name = name
        self.capacity = capacity
        self._items: deque[Any] = deque()
        self._open_senders = senders
        self._receiver_closed = False
        self._peak_depth = 0
        self._sent = 0
        self._cond = threading.Condition(threading.Lock())

    def send(self, item: Any) -> None:
        """
        Enqueue an item, blocking while the channel is full.

        Raises:
            ChannelClosed: If the receiving side has closed the channel
            ChannelError: If every sender has already closed its end
        """
        if item is None:
            raise ChannelError(f"{self.name}: None is reserved as the end-of-stream marker")
        with self._cond:
            while len(self._items) >= self.capacity and not self._receiver_closed:
                self._cond.wait()
            if self._receiver_closed:
                raise ChannelClosed(f"{self.name}: receiver closed")
            if self._open_senders == 0:
                raise ChannelError(f"{self.name}: send after all senders closed")
            self._items.append(item)
            self._sent += 1
            if len(self._items) > self._peak_depth:
                self._peak_depth = len(self._items)
            self._cond.notify_all()

    def recv(self) -> Optional[Any]:
        """Dequeue the next item; None once the channel is closed and drained."""
        with self._cond:
            while not self._items and self._open_senders > 0 and not self._receiver_closed:
                self._cond.wait()
            if self._receiver_closed or not self._items:
                return None
            item = self._items.popleft()
            self._cond.notify_all()
            return item

    def close_sender(self) -> None:
        """Release one sender reference. Extra calls are ignored."""
        with self._cond:
            if self._open_senders > 0:
                self._open_senders -= 1
            self._cond.notify_all()

    def close_receiver(self) -> None:
        """Abandon the channel from the receiving side, discarding queued items."""
        with self._cond:
            self._receiver_closed = True
            self._items.clear()
            self._cond.notify_all()

    @property
    def depth(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def peak_depth(self) -> int:
        with self._cond:
            return self._peak_depth

    @property
    def sent_count(self) -> int:
        with self._cond:
            return self._sent

    @property
    def is_closed(self) -> bool:
        """True once no more items can ever be received."""
        with self._cond:
            return self._receiver_closed or (self._open_senders == 0 and not self._items)

    def __iter__(self):
        while True:
            item = self.recv()
            if item is None:
                return
            yield item

    def __repr__(self) -> str:
        return f"BoundedChannel(name={self.name!r}, capacity={self.capacity})"


@dataclass
class PipelineStats:
    """
    Observations from one pipeline run.

    Attributes:
        peak_in_flight: Highest number of simultaneous decode+hash operations
        peak_work_depth: Highest number of queued identifiers
        peak_result_depth: Highest number of queued result records
        files_sent: Identifiers pushed by the producer
        batches_written: Batches handed to the persistence sink
    """
    peak_in_flight: int = 0
    peak_work_depth: int = 0
    peak_result_depth: int = 0
    files_sent: int = 0
    batches_written: int = 0
    _in_flight: int = field(default=0, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def task_started(self) -> None:
        with self._lock:
            self._in_flight += 1
            if self._in_flight > self.peak_in_flight:
                self.peak_in_flight = self._in_flight

    def task_finished(self) -> None:
        with self._lock:
            self._in_flight -= 1

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def record_channels(self, work: BoundedChannel, results: BoundedChannel) -> None:
        self.peak_work_depth = work.peak_depth
        self.peak_result_depth = results.peak_depth
        self.files_sent = work.sent_count

    def to_dict(self) -> dict:
        return {
            'peak_in_flight': self.peak_in_flight,
            'peak_work_depth': self.peak_work_depth,
            'peak_result_depth': self.peak_result_depth,
            'files_sent': self.files_sent,
            'batches_written': self.batches_written,
        }


__all__ = ['BoundedChannel', 'PipelineStats']

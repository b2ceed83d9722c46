"""
Runtime configuration for the scan pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from ..config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CHANNEL_BUFFER_SIZE,
    DEFAULT_MAX_CONCURRENT_TASKS,
)
from ..errors import ConfigurationError


@dataclass(frozen=True)
class ProcessingConfig:
    """
    Pipeline tuning knobs.

    Attributes:
        max_concurrent_tasks: Semaphore capacity for decode+hash (>= 1)
        channel_buffer_size: Capacity of both the work and result channels (>= 1)
        batch_size: Persistence flush granularity (>= 1)
        enable_progress_reporting: Gate for started/progress/completed events;
            errors are reported regardless
        worker_count: Worker loops in the pool; defaults to max_concurrent_tasks
    """
    max_concurrent_tasks: int = DEFAULT_MAX_CONCURRENT_TASKS
    channel_buffer_size: int = DEFAULT_CHANNEL_BUFFER_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE
    enable_progress_reporting: bool = True
    worker_count: Optional[int] = None

    def validate(self) -> None:
        """Raise ConfigurationError for any out-of-range value."""
        for name in ('max_concurrent_tasks', 'channel_buffer_size', 'batch_size'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.worker_count is not None:
            if isinstance(self.worker_count, bool) or not isinstance(self.worker_count, int) \
                    or self.worker_count < 1:
                raise ConfigurationError(
                    f"worker_count must be a positive integer, got {self.worker_count!r}"
                )

    @property
    def effective_worker_count(self) -> int:
        return self.worker_count or self.max_concurrent_tasks

    def with_max_concurrent_tasks(self, value: int) -> 'ProcessingConfig':
        return replace(self, max_concurrent_tasks=value)

    def with_channel_buffer_size(self, value: int) -> 'ProcessingConfig':
        return replace(self, channel_buffer_size=value)

    def with_batch_size(self, value: int) -> 'ProcessingConfig':
        return replace(self, batch_size=value)

    def with_progress_reporting(self, enabled: bool) -> 'ProcessingConfig':
        return replace(self, enable_progress_reporting=enabled)

    def with_worker_count(self, value: Optional[int]) -> 'ProcessingConfig':
        return replace(self, worker_count=value)

    def to_dict(self) -> dict[str, Any]:
        return {
            'max_concurrent_tasks': self.max_concurrent_tasks,
            'channel_buffer_size': self.channel_buffer_size,
            'batch_size': self.batch_size,
            'enable_progress_reporting': self.enable_progress_reporting,
            'worker_count': self.worker_count,
        }


__all__ = ['ProcessingConfig']

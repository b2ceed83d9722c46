"""
Pipeline package for Image Dedup.

Public API:
- ProcessingEngine / EngineState: Run a scan end to end
- ProcessingConfig: Concurrency, buffering and batching knobs
- BoundedChannel / PipelineStats: Blocking channels and run observations
- Producer / WorkerPool / Collector: The individual stages
"""

from __future__ import annotations

from .channel import BoundedChannel, PipelineStats
from .collector import Collector
from .config import ProcessingConfig
from .engine import EngineState, ProcessingEngine
from .producer import Producer
from .workers import WorkerPool

__all__ = [
    'BoundedChannel',
    'PipelineStats',
    'Collector',
    'ProcessingConfig',
    'EngineState',
    'ProcessingEngine',
    'Producer',
    'WorkerPool',
]

"""
Batch processing sub-modules.
Job model, registry, runner, scheduler and the queue manager facade.
"""

from .job import JobStatus, SubtitleJob, TRANSITIONS
from .registry import JobRegistry, RegistryListener
from .chunk_processor import ChunkProcessor, ChunkResult
from .result_aggregator import ResultAggregator, AggregatedResult
from .progress_tracker import (
    ProgressTracker,
    ProgressState,
    ProgressCallback,
    chunk_progress,
    create_logging_callback,
)
from .job_runner import JobRunner, RunnerConfig
from .scheduler import BatchScheduler, SchedulerConfig, RateLimitWindow
from .queue_manager import BatchQueueManager, BatchProgress, QueueConfig

__all__ = [
    # Job model
    'JobStatus',
    'SubtitleJob',
    'TRANSITIONS',
    'JobRegistry',
    'RegistryListener',
    # Chunk processing
    'ChunkProcessor',
    'ChunkResult',
    # Result aggregation
    'ResultAggregator',
    'AggregatedResult',
    # Progress tracking
    'ProgressTracker',
    'ProgressState',
    'ProgressCallback',
    'chunk_progress',
    'create_logging_callback',
    # Execution
    'JobRunner',
    'RunnerConfig',
    'BatchScheduler',
    'SchedulerConfig',
    'RateLimitWindow',
    # Facade
    'BatchQueueManager',
    'BatchProgress',
    'QueueConfig',
]

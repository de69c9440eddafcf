"""
Batch scheduler - admits PENDING jobs into PROCESSING.

Two caps hold at every tick:
- concurrency: active translation runs <= max_concurrent
- rate: job starts within the trailing window <= rate_limit_jobs

Selection is strictly positional over the PENDING jobs in registry order,
so reordering the queue changes who starts next. Admitted jobs are never
preempted. The polling loop stops by itself once the batch is quiescent
(nothing PENDING, nothing active).
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Optional

from config.constants import (
    QUEUE_MAX_CONCURRENT,
    QUEUE_RATE_LIMIT_JOBS,
    QUEUE_RATE_LIMIT_WINDOW_SECONDS,
    SCHEDULER_TICK_SECONDS,
)
from config.logging_config import get_logger
from .job import JobStatus
from .job_runner import JobRunner
from .registry import JobRegistry

logger = get_logger(__name__)


@dataclass
class SchedulerConfig:
    """
    Configuration for BatchScheduler

    Attributes:
        max_concurrent: Maximum translation runs active at once
        rate_limit_jobs: Maximum job starts per rate window
        rate_limit_window_seconds: Length of the trailing rate window
        tick_interval_seconds: Delay between scheduling passes
    """
    max_concurrent: int = QUEUE_MAX_CONCURRENT
    rate_limit_jobs: int = QUEUE_RATE_LIMIT_JOBS
    rate_limit_window_seconds: float = QUEUE_RATE_LIMIT_WINDOW_SECONDS
    tick_interval_seconds: float = SCHEDULER_TICK_SECONDS

    def __post_init__(self):
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.rate_limit_jobs < 1:
            raise ValueError("rate_limit_jobs must be at least 1")
        if self.rate_limit_window_seconds <= 0:
            raise ValueError("rate_limit_window_seconds must be positive")
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be positive")


class RateLimitWindow:
    """Sliding window of job start timestamps."""

    def __init__(self, max_starts: int, window_seconds: float):
        self.max_starts = max_starts
        self.window_seconds = window_seconds
        self._starts: Deque[float] = deque()

    def prune(self, now: float):
        """Forget starts that left the window."""
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()

    def record(self, now: float):
        self._starts.append(now)

    def available(self) -> int:
        return max(0, self.max_starts - len(self._starts))

    def __len__(self) -> int:
        return len(self._starts)


class BatchScheduler:
    """
    Periodic admission of pending jobs under concurrency and rate caps.

    Usage:
        scheduler = BatchScheduler(registry, runner, SchedulerConfig())
        scheduler.start()                 # begins ticking
        await scheduler.wait_until_idle()
        await scheduler.stop()
    """

    def __init__(
        self,
        registry: JobRegistry,
        runner: JobRunner,
        config: Optional[SchedulerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        on_idle: Optional[Callable[[], None]] = None,
    ):
        self.registry = registry
        self.runner = runner
        self.config = config or SchedulerConfig()
        self.clock = clock
        self.on_idle = on_idle

        self.rate_window = RateLimitWindow(
            self.config.rate_limit_jobs, self.config.rate_limit_window_seconds
        )

        self._processing = False
        self._loop_task: Optional[asyncio.Task] = None
        self._idle_event: Optional[asyncio.Event] = None
        self._tick_count = 0

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def _get_idle_event(self) -> asyncio.Event:
        if self._idle_event is None:
            self._idle_event = asyncio.Event()
            if not self._processing:
                self._idle_event.set()
        return self._idle_event

    # =========================================
    # Scheduling pass
    # =========================================

    def tick(self) -> List[str]:
        """
        Run one scheduling pass.

        Returns:
            Ids of the jobs admitted during this pass
        """
        self._tick_count += 1
        now = self.clock()
        self.rate_window.prune(now)

        pending = self.registry.pending()
        active = self.registry.active_count

        if not pending and active == 0:
            if self.registry.count(JobStatus.PENDING, JobStatus.PROCESSING) == 0:
                self._finish()
            return []

        slots = min(
            self.config.max_concurrent - active,
            self.rate_window.available(),
            len(pending),
        )
        if slots <= 0:
            return []

        admitted = []
        for job in pending[:slots]:
            self.rate_window.record(now)
            if self.runner.start_translation(job.id) is not None:
                admitted.append(job.id)

        logger.info(
            f"Admitted {len(admitted)} job(s): "
            f"active={self.registry.active_count}/{self.config.max_concurrent}, "
            f"window={len(self.rate_window)}/{self.config.rate_limit_jobs}, "
            f"pending={len(pending) - len(admitted)}"
        )
        return admitted

    def _finish(self):
        if not self._processing:
            return
        self._processing = False
        logger.info("Batch finished: no pending or active jobs")
        if self._idle_event is not None:
            self._idle_event.set()
        if self.on_idle:
            try:
                self.on_idle()
            except Exception as e:
                logger.error(f"on_idle callback error: {e}")

    # =========================================
    # Polling loop
    # =========================================

    def start(self):
        """Begin (or keep) ticking. Must be called from a running event loop."""
        self._processing = True
        self._get_idle_event().clear()
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.get_running_loop().create_task(
                self._run(), name="batch-scheduler"
            )
            logger.debug("Scheduler started")

    async def _run(self):
        while self._processing:
            self.tick()
            if not self._processing:
                break
            await asyncio.sleep(self.config.tick_interval_seconds)

    def halt(self):
        """Stop ticking without waiting for the loop task."""
        was_processing = self._processing
        self._processing = False
        if self._idle_event is not None:
            self._idle_event.set()
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        if was_processing:
            logger.info("Scheduler halted")

    async def stop(self):
        """Stop ticking and dispose of the loop task."""
        task = self._loop_task
        self.halt()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
        self._loop_task = None

    async def wait_until_idle(self):
        """Wait until the scheduler has stopped processing."""
        if not self._processing:
            return
        await self._get_idle_event().wait()

"""
Progress tracking and reporting for a single translation run.

The first PROGRESS_SETUP_PERCENT points are reserved for preparation, the
next PROGRESS_TRANSLATE_SPAN points are spread across chunk completions and
the job reaches 100 only when it completes.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List

from config.constants import (
    PROGRESS_DONE_PERCENT,
    PROGRESS_SETUP_PERCENT,
    PROGRESS_TRANSLATE_SPAN,
)
from config.logging_config import get_logger

logger = get_logger(__name__)


# Type alias for progress callbacks: (percent, message, data)
ProgressCallback = Callable[[int, str, Dict[str, Any]], None]


def chunk_progress(completed: int, total: int) -> int:
    """Percent reached after ``completed`` of ``total`` chunks settled."""
    if total <= 0:
        return PROGRESS_DONE_PERCENT
    return math.floor(PROGRESS_SETUP_PERCENT + PROGRESS_TRANSLATE_SPAN * completed / total)


@dataclass
class ProgressState:
    """Current progress state."""
    total_chunks: int = 0
    completed_chunks: int = 0
    percentage: int = PROGRESS_SETUP_PERCENT
    message: str = ""
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def elapsed_seconds(self) -> float:
        """Get elapsed time in seconds."""
        return (datetime.now() - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total": self.total_chunks,
            "completed": self.completed_chunks,
            "percentage": self.percentage,
            "message": self.message,
            "elapsed_seconds": self.elapsed_seconds,
        }


class ProgressTracker:
    """
    Tracks and reports chunk progress of one job's translation run.

    The job already sits at 5% ("Preparing...") when the run starts; the
    final 100% is written by the COMPLETED transition itself.

    Usage:
        tracker = ProgressTracker(job_id="job_1", total_chunks=3)
        tracker.add_callback(lambda pct, msg, data: print(pct, msg))

        tracker.chunk_completed()       # 35, "Translating chunk 1/3"
        tracker.chunk_completed()       # 65
        tracker.chunk_completed()       # 95
    """

    def __init__(self, job_id: str = "", job_name: str = "", total_chunks: int = 0):
        self.job_id = job_id
        self.job_name = job_name
        self.state = ProgressState(total_chunks=total_chunks)
        self._callbacks: List[ProgressCallback] = []

    def add_callback(self, callback: ProgressCallback):
        """Add progress callback."""
        self._callbacks.append(callback)

    def chunk_completed(self) -> int:
        """Record one more settled chunk and return the new percentage."""
        self.state.completed_chunks += 1
        completed = self.state.completed_chunks
        total = self.state.total_chunks
        percent = chunk_progress(completed, total)
        self._notify(percent, f"Translating chunk {completed}/{total}")
        return percent

    def _notify(self, percentage: int, message: str):
        """Notify all callbacks."""
        self.state.percentage = max(self.state.percentage, percentage)
        self.state.message = message
        data = {
            "job_id": self.job_id,
            "job_name": self.job_name,
            **self.state.to_dict(),
        }

        for callback in self._callbacks:
            try:
                callback(percentage, message, data)
            except Exception as e:
                logger.error(f"Progress callback error: {e}")


def create_logging_callback(log_interval: int = 5):
    """
    Create a logging callback that logs every N updates.

    Args:
        log_interval: Log every N updates

    Returns:
        Progress callback function
    """
    counter = {"count": 0}

    def callback(percentage: int, message: str, data: Dict[str, Any]):
        counter["count"] += 1
        last_chunk = data.get("completed") == data.get("total")
        if counter["count"] % log_interval == 0 or last_chunk:
            logger.info(
                f"[{data.get('job_name') or data.get('job_id')}] "
                f"{data.get('completed', 0)}/{data.get('total', 0)} chunks "
                f"({percentage}%) - {message}"
            )

    return callback

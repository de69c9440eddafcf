"""
Job registry - single source of truth for the batch.

Owns the ordered job list, the per-job cancellation handles and the set of
jobs with an active translation run. All mutations are synchronous
merge-by-id replacements: a writer always applies its change to the job as
it is stored at that moment, so concurrent chunk completions of the same
job can never overwrite each other with stale snapshots.

Writes addressed to a job that has been removed are ignored (return None),
which lets a run that outlives its job finish quietly.
"""

from typing import Callable, Dict, Iterable, List, Optional, Set

from config.logging_config import get_logger
from core.cancellation import CancellationToken
from .job import JobStatus, SubtitleJob

logger = get_logger(__name__)

# Called with (job_id, job) after every change; job is None when removed
RegistryListener = Callable[[str, Optional[SubtitleJob]], None]


class JobRegistry:
    """Ordered, in-memory store of subtitle jobs."""

    def __init__(self):
        self._jobs: Dict[str, SubtitleJob] = {}
        self._handles: Dict[str, CancellationToken] = {}
        self._active: Set[str] = set()
        self._listeners: List[RegistryListener] = []

    # =========================================
    # Observation
    # =========================================

    def subscribe(self, listener: RegistryListener):
        self._listeners.append(listener)

    def unsubscribe(self, listener: RegistryListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, job_id: str, job: Optional[SubtitleJob]):
        for listener in list(self._listeners):
            try:
                listener(job_id, job)
            except Exception as e:
                logger.error(f"Registry listener error: {e}")

    # =========================================
    # Queries
    # =========================================

    def get(self, job_id: str) -> Optional[SubtitleJob]:
        return self._jobs.get(job_id)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def jobs(self) -> List[SubtitleJob]:
        """All jobs in queue order."""
        return list(self._jobs.values())

    def with_status(self, *statuses: JobStatus) -> List[SubtitleJob]:
        """Jobs in any of ``statuses``, in queue order."""
        return [job for job in self._jobs.values() if job.status in statuses]

    def pending(self) -> List[SubtitleJob]:
        return self.with_status(JobStatus.PENDING)

    def count(self, *statuses: JobStatus) -> int:
        return len(self.with_status(*statuses))

    # =========================================
    # Mutation
    # =========================================

    def add(self, job: SubtitleJob) -> SubtitleJob:
        if job.id in self._jobs:
            raise ValueError(f"Duplicate job id: {job.id}")
        self._jobs[job.id] = job
        logger.debug(f"Job added: {job.id} ({job.name}, {job.status.value})")
        self._notify(job.id, job)
        return job

    def _store(self, job: SubtitleJob) -> SubtitleJob:
        self._jobs[job.id] = job
        self._notify(job.id, job)
        return job

    def transition(self, job_id: str, target: JobStatus, **changes) -> Optional[SubtitleJob]:
        """
        Move a job to ``target``.

        Raises:
            InvalidTransitionError: If the stored job cannot reach ``target``.
        """
        job = self._jobs.get(job_id)
        if job is None:
            return None
        updated = job.transition(target, **changes)
        logger.debug(f"Job {job_id}: {job.status.value} -> {target.value}")
        return self._store(updated)

    def report_progress(self, job_id: str, progress: int,
                        progress_text: Optional[str] = None) -> Optional[SubtitleJob]:
        """Raise a running job's progress; ignored once the job left its run."""
        job = self._jobs.get(job_id)
        if job is None or not job.is_running:
            return None
        return self._store(job.with_progress(progress, progress_text))

    def update(self, job_id: str, **changes) -> Optional[SubtitleJob]:
        """Merge non-lifecycle field changes into the stored job."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return self._store(job.with_changes(**changes))

    def retry(self, job_id: str) -> Optional[SubtitleJob]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return self._store(job.retry())

    def cancel(self, job_id: str) -> Optional[SubtitleJob]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return self._store(job.cancel())

    def fail(self, job_id: str, error: str) -> Optional[SubtitleJob]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return self._store(job.fail(error))

    def reorder(self, job_ids: Iterable[str]):
        """
        Reorder the queue.

        ``job_ids`` lists the new order; jobs it omits keep their relative
        order after the listed ones. Unknown ids are ignored.
        """
        ordered = [jid for jid in dict.fromkeys(job_ids) if jid in self._jobs]
        moved = set(ordered)
        rest = [jid for jid in self._jobs if jid not in moved]
        self._jobs = {jid: self._jobs[jid] for jid in ordered + rest}
        logger.debug(f"Queue reordered: {len(ordered)} jobs moved")

    def move(self, job_id: str, index: int):
        if job_id not in self._jobs:
            return
        order = [jid for jid in self._jobs if jid != job_id]
        index = max(0, min(index, len(order)))
        order.insert(index, job_id)
        self.reorder(order)

    def remove(self, job_id: str) -> Optional[SubtitleJob]:
        """Delete a job, aborting its in-flight operation first."""
        self.abort(job_id)
        self._handles.pop(job_id, None)
        job = self._jobs.pop(job_id, None)
        if job is not None:
            logger.info(f"Job removed: {job_id} ({job.status.value})")
            self._notify(job_id, None)
        return job

    def clear(self) -> int:
        """Delete every job, aborting all in-flight operations."""
        for token in list(self._handles.values()):
            token.cancel()
        removed = list(self._jobs)
        self._handles.clear()
        self._jobs.clear()
        for job_id in removed:
            self._notify(job_id, None)
        logger.info(f"Registry cleared: {len(removed)} jobs removed")
        return len(removed)

    # =========================================
    # Cancellation handles
    # =========================================

    def acquire_handle(self, job_id: str) -> CancellationToken:
        """Create the cancellation handle for a new run of ``job_id``."""
        previous = self._handles.get(job_id)
        if previous is not None:
            previous.cancel("Superseded by a new run")
        token = CancellationToken(name=job_id)
        self._handles[job_id] = token
        return token

    def release_handle(self, job_id: str, token: CancellationToken):
        """Drop the handle if it still belongs to the run holding ``token``."""
        if self._handles.get(job_id) is token:
            del self._handles[job_id]

    def handle(self, job_id: str) -> Optional[CancellationToken]:
        return self._handles.get(job_id)

    def abort(self, job_id: str) -> bool:
        """Invoke the job's cancellation handle, if it has one."""
        token = self.handle(job_id)
        if token is None:
            return False
        return token.cancel()

    # =========================================
    # Active translation runs
    # =========================================

    def mark_active(self, job_id: str):
        self._active.add(job_id)

    def mark_inactive(self, job_id: str):
        self._active.discard(job_id)

    @property
    def active_count(self) -> int:
        return len(self._active)

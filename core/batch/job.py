"""
Subtitle job model and lifecycle state machine.

Jobs are immutable snapshots. Every lifecycle change goes through
SubtitleJob.transition(), which validates the move against TRANSITIONS and
keeps the result/error invariants:

    result is set  <=>  status is COMPLETED
    error is set   <=>  status is FAILED
"""

import dataclasses
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from config.constants import (
    DEFAULT_MODEL,
    DEFAULT_SOURCE_LANG,
    DEFAULT_TARGET_LANG,
    OUTPUT_EXTENSION,
    PROGRESS_TEXT_CANCELLED,
)
from core.errors import InvalidTransitionError


class JobStatus(str, Enum):
    """Job lifecycle states"""
    IDLE = "idle"                                   # Ready, waiting for batch start
    EXTRACTING_GLOSSARY = "extracting_glossary"     # Glossary extraction running
    AWAITING_VALIDATION = "awaiting_validation"     # Glossary waiting for user review
    PENDING = "pending"                             # Waiting for scheduler admission
    PROCESSING = "processing"                       # Translation running
    COMPLETED = "completed"                         # Successfully completed
    FAILED = "failed"                               # Failed with errors
    CANCELLED = "cancelled"                         # Cancelled by user


TRANSITIONS: Dict[JobStatus, FrozenSet[JobStatus]] = {
    JobStatus.IDLE: frozenset({JobStatus.PENDING}),
    JobStatus.EXTRACTING_GLOSSARY: frozenset({
        JobStatus.AWAITING_VALIDATION, JobStatus.FAILED, JobStatus.CANCELLED,
    }),
    JobStatus.AWAITING_VALIDATION: frozenset({JobStatus.IDLE, JobStatus.CANCELLED}),
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING, JobStatus.CANCELLED}),
    JobStatus.PROCESSING: frozenset({
        JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED,
    }),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset({JobStatus.EXTRACTING_GLOSSARY, JobStatus.PENDING}),
    JobStatus.CANCELLED: frozenset({JobStatus.EXTRACTING_GLOSSARY, JobStatus.PENDING}),
}

RUNNING_STATES = frozenset({JobStatus.EXTRACTING_GLOSSARY, JobStatus.PROCESSING})
FINISHED_STATES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})
RETRYABLE_STATES = frozenset({JobStatus.FAILED, JobStatus.CANCELLED})


def new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class SubtitleJob:
    """A subtitle file submitted for translation, at one point in its lifecycle"""

    # Identification
    id: str
    name: str
    file_name: str

    # Input
    content: str = field(repr=False)

    # Translation config
    prompt: str = ""
    source_lang: str = DEFAULT_SOURCE_LANG
    target_lang: str = DEFAULT_TARGET_LANG
    model: str = DEFAULT_MODEL
    detect_glossary: bool = False

    # Status & progress
    status: JobStatus = JobStatus.IDLE
    progress: int = 0
    progress_text: Optional[str] = None

    # Outcome
    result: Optional[str] = field(default=None, repr=False)
    error: Optional[str] = None
    glossary: Optional[Dict[str, str]] = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        file_name: str,
        content: str,
        prompt: str,
        source_lang: str = DEFAULT_SOURCE_LANG,
        target_lang: str = DEFAULT_TARGET_LANG,
        model: str = DEFAULT_MODEL,
        detect_glossary: bool = False,
        job_id: Optional[str] = None,
    ) -> 'SubtitleJob':
        """Create a job in its initial state."""
        return cls(
            id=job_id or new_job_id(),
            name=Path(file_name).stem,
            file_name=Path(file_name).name,
            content=content,
            prompt=prompt,
            source_lang=source_lang,
            target_lang=target_lang,
            model=model,
            detect_glossary=detect_glossary,
            status=JobStatus.EXTRACTING_GLOSSARY if detect_glossary else JobStatus.IDLE,
        )

    @classmethod
    def from_file(cls, path: Path, **kwargs) -> 'SubtitleJob':
        """Create a job from a subtitle file on disk (UTF-8, BOM tolerated)."""
        path = Path(path)
        content = path.read_text(encoding="utf-8-sig")
        return cls.create(file_name=path.name, content=content, **kwargs)

    # =========================================
    # Queries
    # =========================================

    @property
    def is_running(self) -> bool:
        return self.status in RUNNING_STATES

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATES

    @property
    def can_retry(self) -> bool:
        return self.status in RETRYABLE_STATES

    @property
    def retry_status(self) -> JobStatus:
        """State a retry re-enters."""
        return JobStatus.EXTRACTING_GLOSSARY if self.detect_glossary else JobStatus.PENDING

    @property
    def output_filename(self) -> str:
        """Suggested name for the translated file."""
        return f"{Path(self.file_name).stem}_{self.target_lang.lower()}{OUTPUT_EXTENSION}"

    def can_transition_to(self, target: JobStatus) -> bool:
        if target not in TRANSITIONS[self.status]:
            return False
        # Flagged jobs must pass through extraction and validation again
        if self.status in RETRYABLE_STATES:
            return target == self.retry_status
        return True

    # =========================================
    # Transitions
    # =========================================

    def transition(self, target: JobStatus, **changes) -> 'SubtitleJob':
        """
        Return a copy of this job in state ``target``.

        Raises:
            InvalidTransitionError: If ``target`` is not reachable.
        """
        if not self.can_transition_to(target):
            raise InvalidTransitionError(self.id, self.status.value, target.value)

        changes['status'] = target
        if target != JobStatus.COMPLETED:
            changes['result'] = None
        elif changes.get('result') is None:
            changes['result'] = self.result if self.result is not None else ""
        if target != JobStatus.FAILED:
            changes['error'] = None
        elif not changes.get('error'):
            changes['error'] = "Unknown error"
        return dataclasses.replace(self, **changes)

    def retry(self) -> 'SubtitleJob':
        """Fresh attempt after a failure or cancellation."""
        return self.transition(self.retry_status, progress=0, progress_text=None)

    def cancel(self) -> 'SubtitleJob':
        return self.transition(
            JobStatus.CANCELLED, progress=0, progress_text=PROGRESS_TEXT_CANCELLED
        )

    def fail(self, error: str) -> 'SubtitleJob':
        return self.transition(JobStatus.FAILED, error=error, progress=0, progress_text=None)

    def with_progress(self, progress: int, progress_text: Optional[str] = None) -> 'SubtitleJob':
        """
        Return a copy with updated progress.

        Progress never moves backwards within a run and is clamped to
        [0, 100]; a stale (lower) report is ignored.
        """
        progress = min(100, int(progress))
        if progress < self.progress:
            return self
        text = progress_text if progress_text is not None else self.progress_text
        return dataclasses.replace(self, progress=progress, progress_text=text)

    def with_changes(self, **changes) -> 'SubtitleJob':
        """Copy with non-lifecycle fields changed."""
        for name in ('status', 'result', 'error'):
            if name in changes:
                raise ValueError(f"'{name}' can only change through transition()")
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict:
        """Summary for display/serialization (content and result omitted)"""
        return {
            'id': self.id,
            'name': self.name,
            'file_name': self.file_name,
            'source_lang': self.source_lang,
            'target_lang': self.target_lang,
            'model': self.model,
            'detect_glossary': self.detect_glossary,
            'status': self.status.value,
            'progress': self.progress,
            'progress_text': self.progress_text,
            'error': self.error,
            'glossary_terms': len(self.glossary or {}),
            'has_result': self.result is not None,
        }

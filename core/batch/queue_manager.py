"""
Batch queue manager - the user-facing actions on a batch of subtitle jobs.

Wires the registry, the job runner and the scheduler together:

    manager = BatchQueueManager(provider, QueueConfig.from_settings(settings))
    manager.add_file("episode01.srt", prompt=DEFAULT_PROMPT)
    manager.start_processing()
    await manager.wait_until_idle()
    for filename, text in manager.completed_results():
        ...
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from config.constants import (
    CHUNK_SIZE,
    DEFAULT_MODEL,
    DEFAULT_SOURCE_LANG,
    DEFAULT_TARGET_LANG,
    ENTRY_SEPARATOR,
    GLOSSARY_SAMPLE_CHARS,
    QUEUE_MAX_CONCURRENT,
    QUEUE_RATE_LIMIT_JOBS,
    QUEUE_RATE_LIMIT_WINDOW_SECONDS,
    SCHEDULER_TICK_SECONDS,
    SUPPORTED_EXTENSIONS,
)
from config.logging_config import get_logger
from core.chunker import SubtitleChunker
from core.errors import ValidationError
from core.glossary import clean_terms
from .job import FINISHED_STATES, JobStatus, SubtitleJob
from .job_runner import JobRunner, RunnerConfig
from .registry import JobRegistry, RegistryListener
from .scheduler import BatchScheduler, SchedulerConfig

logger = get_logger(__name__)


@dataclass
class QueueConfig:
    """Configuration for BatchQueueManager."""
    chunk_size: int = CHUNK_SIZE
    max_concurrent: int = QUEUE_MAX_CONCURRENT
    rate_limit_jobs: int = QUEUE_RATE_LIMIT_JOBS
    rate_limit_window_seconds: float = QUEUE_RATE_LIMIT_WINDOW_SECONDS
    tick_interval_seconds: float = SCHEDULER_TICK_SECONDS
    glossary_sample_chars: int = GLOSSARY_SAMPLE_CHARS
    max_chunk_concurrency: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> 'QueueConfig':
        return cls(
            chunk_size=settings.chunk_size,
            max_concurrent=settings.max_concurrent_jobs,
            rate_limit_jobs=settings.rate_limit_jobs,
            rate_limit_window_seconds=settings.rate_limit_window_seconds,
            tick_interval_seconds=settings.tick_interval_seconds,
            glossary_sample_chars=settings.glossary_sample_chars,
        )


@dataclass
class BatchProgress:
    """Overall progress of the batch."""
    finished: int
    total: int

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.finished / self.total * 100


class BatchQueueManager:
    """
    Facade over registry, runner and scheduler.

    Must be used from inside a running event loop: adding a flagged job and
    starting the batch both launch asyncio tasks.
    """

    def __init__(
        self,
        provider: Any,
        config: Optional[QueueConfig] = None,
        clock=None,
    ):
        self.provider = provider
        self.config = config or QueueConfig()

        self.registry = JobRegistry()
        self.runner = JobRunner(
            self.registry,
            provider,
            chunker=SubtitleChunker(self.config.chunk_size, ENTRY_SEPARATOR),
            config=RunnerConfig(
                glossary_sample_chars=self.config.glossary_sample_chars,
                max_chunk_concurrency=self.config.max_chunk_concurrency,
            ),
        )
        scheduler_kwargs = {} if clock is None else {"clock": clock}
        self.scheduler = BatchScheduler(
            self.registry,
            self.runner,
            SchedulerConfig(
                max_concurrent=self.config.max_concurrent,
                rate_limit_jobs=self.config.rate_limit_jobs,
                rate_limit_window_seconds=self.config.rate_limit_window_seconds,
                tick_interval_seconds=self.config.tick_interval_seconds,
            ),
            **scheduler_kwargs,
        )

    # =========================================
    # Queries
    # =========================================

    @property
    def jobs(self) -> List[SubtitleJob]:
        return self.registry.jobs()

    @property
    def is_processing(self) -> bool:
        return self.scheduler.is_processing

    def get_job(self, job_id: str) -> Optional[SubtitleJob]:
        return self.registry.get(job_id)

    def subscribe(self, listener: RegistryListener):
        self.registry.subscribe(listener)

    def unsubscribe(self, listener: RegistryListener):
        self.registry.unsubscribe(listener)

    def overall_progress(self) -> BatchProgress:
        return BatchProgress(
            finished=self.registry.count(*FINISHED_STATES),
            total=len(self.registry),
        )

    def completed_results(self) -> List[Tuple[str, str]]:
        """(output filename, translated text) for every COMPLETED job."""
        return [
            (job.output_filename, job.result)
            for job in self.registry.with_status(JobStatus.COMPLETED)
            if job.result is not None
        ]

    # =========================================
    # Submission
    # =========================================

    def add_job(
        self,
        file_name: str,
        content: str,
        prompt: str,
        source_lang: str = DEFAULT_SOURCE_LANG,
        target_lang: str = DEFAULT_TARGET_LANG,
        model: str = DEFAULT_MODEL,
        detect_glossary: bool = False,
    ) -> SubtitleJob:
        """Add one subtitle document to the queue."""
        return self.add_jobs(
            [(file_name, content)],
            prompt=prompt,
            source_lang=source_lang,
            target_lang=target_lang,
            model=model,
            detect_glossary=detect_glossary,
        )[0]

    def add_jobs(
        self,
        files: Iterable[Tuple[str, str]],
        prompt: str,
        source_lang: str = DEFAULT_SOURCE_LANG,
        target_lang: str = DEFAULT_TARGET_LANG,
        model: str = DEFAULT_MODEL,
        detect_glossary: bool = False,
    ) -> List[SubtitleJob]:
        """
        Add several (file_name, content) documents sharing one configuration.

        Raises:
            ValidationError: No files, empty prompt or unsupported extension.
                Nothing is added in that case.
            ConfigurationError: Glossary extraction requested without a
                configured provider. Nothing is added in that case.
        """
        files = list(files)
        if not files:
            raise ValidationError("Please select at least one .srt file")
        if not prompt or not prompt.strip():
            raise ValidationError("Translation instructions must not be empty")
        for file_name, _ in files:
            if Path(file_name).suffix.lower() not in SUPPORTED_EXTENSIONS:
                raise ValidationError(
                    f"Unsupported file type: {file_name} "
                    f"(expected {', '.join(SUPPORTED_EXTENSIONS)})"
                )
        if detect_glossary:
            self.provider.ensure_configured()

        added = []
        for file_name, content in files:
            job = SubtitleJob.create(
                file_name=file_name,
                content=content,
                prompt=prompt,
                source_lang=source_lang,
                target_lang=target_lang,
                model=model,
                detect_glossary=detect_glossary,
            )
            self.registry.add(job)
            added.append(job)
            if job.status == JobStatus.EXTRACTING_GLOSSARY:
                self.runner.start_extraction(job.id)

        logger.info(
            f"Added {len(added)} job(s) "
            f"({source_lang} -> {target_lang}, glossary={'on' if detect_glossary else 'off'})"
        )
        return added

    def add_file(self, path: Union[str, Path], prompt: str, **kwargs) -> SubtitleJob:
        """Read a subtitle file from disk and add it to the queue."""
        path = Path(path)
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            raise ValidationError(f"Unsupported file type: {path.name}")
        content = path.read_text(encoding="utf-8-sig")
        return self.add_job(path.name, content, prompt, **kwargs)

    # =========================================
    # Batch control
    # =========================================

    def start_processing(self) -> bool:
        """
        Move every IDLE job to PENDING and start the scheduler.

        Returns:
            False if the batch is already processing or the queue is empty

        Raises:
            ConfigurationError: If the provider is not configured
        """
        if self.is_processing or len(self.registry) == 0:
            return False
        self.provider.ensure_configured()

        queued = 0
        for job in self.registry.with_status(JobStatus.IDLE):
            self.registry.transition(job.id, JobStatus.PENDING)
            queued += 1

        logger.info(f"Processing started: {queued} job(s) queued")
        self.scheduler.start()
        return True

    def cancel_job(self, job_id: str) -> bool:
        """
        Cancel a job.

        Running jobs are aborted through their handle and settle as CANCELLED
        once their run observes it; waiting jobs are cancelled immediately.
        """
        job = self.registry.get(job_id)
        if job is None:
            return False

        if job.is_running:
            aborted = self.registry.abort(job_id)
            logger.info(f"Cancel requested: {job.name}")
            return aborted
        if job.status in (JobStatus.PENDING, JobStatus.AWAITING_VALIDATION):
            self.registry.cancel(job_id)
            logger.info(f"Job cancelled: {job.name}")
            return True
        return False

    def retry_job(self, job_id: str) -> Optional[SubtitleJob]:
        """
        Retry a FAILED or CANCELLED job.

        Raises:
            ConfigurationError: If the provider is not configured
        """
        job = self.registry.get(job_id)
        if job is None or not job.can_retry:
            return None
        self.provider.ensure_configured()

        job = self.registry.retry(job_id)
        logger.info(f"Retrying {job.name} -> {job.status.value}")

        if job.status == JobStatus.EXTRACTING_GLOSSARY:
            self.runner.start_extraction(job_id)
        elif job.status == JobStatus.PENDING and not self.is_processing:
            self.scheduler.start()
        return job

    def remove_job(self, job_id: str) -> bool:
        return self.registry.remove(job_id) is not None

    def clear_jobs(self) -> int:
        """Abort every run, drop every job and stop processing."""
        self.scheduler.halt()
        return self.registry.clear()

    def save_glossary(self, job_id: str, glossary: Mapping[str, str]) -> Optional[SubtitleJob]:
        """Store a reviewed glossary and release the job for the next batch start."""
        job = self.registry.get(job_id)
        if job is None:
            return None
        terms = clean_terms(glossary)
        job = self.registry.transition(job_id, JobStatus.IDLE, glossary=terms)
        logger.info(f"Glossary saved: {job.name} ({len(terms)} terms)")
        return job

    def reorder_jobs(self, job_ids: Iterable[str]):
        self.registry.reorder(job_ids)

    def move_job(self, job_id: str, index: int):
        self.registry.move(job_id, index)

    # =========================================
    # Waiting & shutdown
    # =========================================

    async def wait_for_extractions(self):
        """Wait until no job is extracting its glossary."""
        while self.registry.count(JobStatus.EXTRACTING_GLOSSARY) and self.runner.running_tasks:
            await self.runner.wait_all()

    async def wait_until_idle(self):
        """Wait until the scheduler stopped and every run has settled."""
        await self.scheduler.wait_until_idle()
        await self.runner.wait_all()

    async def shutdown(self):
        """Stop scheduling and cancel every in-flight run."""
        for job in self.registry.jobs():
            if job.is_running:
                self.registry.abort(job.id)
        await self.scheduler.stop()
        await self.runner.cancel_all()
        logger.info("Queue manager shut down")

    def summary(self) -> Dict[str, int]:
        """Job count per status."""
        return {status.value: self.registry.count(status) for status in JobStatus}

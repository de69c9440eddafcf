"""
Job runner - drives one job through a glossary extraction run or a
translation run.

The runner is the only place where outcomes of remote calls become job
state:

    AbortError (or a cancelled token)  -> CANCELLED
    any other exception                -> FAILED, message preserved
    success                            -> AWAITING_VALIDATION / COMPLETED

Each run owns one cancellation handle in the registry, acquired when the
run is started and released when it settles.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Set

from config.constants import (
    GLOSSARY_SAMPLE_CHARS,
    PROGRESS_DONE_PERCENT,
    PROGRESS_SETUP_PERCENT,
    PROGRESS_TEXT_COMPLETED,
    PROGRESS_TEXT_EXTRACTING,
    PROGRESS_TEXT_PREPARING,
)
from config.logging_config import get_logger
from core.cancellation import CancellationToken
from core.chunker import SubtitleChunk, SubtitleChunker
from core.errors import AbortError
from core.glossary import clean_terms
from .chunk_processor import ChunkProcessor
from .job import JobStatus, SubtitleJob
from .progress_tracker import ProgressTracker, create_logging_callback
from .registry import JobRegistry
from .result_aggregator import ResultAggregator

logger = get_logger(__name__)


@dataclass
class RunnerConfig:
    """Configuration for JobRunner."""
    glossary_sample_chars: int = GLOSSARY_SAMPLE_CHARS
    max_chunk_concurrency: Optional[int] = None
    log_progress: bool = True


class JobRunner:
    """
    Runs extraction and translation for jobs held in a JobRegistry.

    ``provider`` is any object with the two async collaborator calls:

        extract_glossary(text, source_lang, target_lang, token) -> dict
        translate_chunk(text, source_lang, target_lang, instruction,
                        glossary, model, token, chunk_number, chunk_total) -> str

    Usage:
        runner = JobRunner(registry, provider)
        task = runner.start_translation(job_id)   # job must be PENDING
        await runner.wait_all()
    """

    def __init__(
        self,
        registry: JobRegistry,
        provider: Any,
        chunker: Optional[SubtitleChunker] = None,
        config: Optional[RunnerConfig] = None,
    ):
        self.registry = registry
        self.provider = provider
        self.chunker = chunker or SubtitleChunker()
        self.config = config or RunnerConfig()
        self.aggregator = ResultAggregator(separator=self.chunker.separator)
        self._tasks: Set[asyncio.Task] = set()

    # =========================================
    # Task management
    # =========================================

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def running_tasks(self) -> int:
        return len(self._tasks)

    async def wait_all(self):
        """Wait until every run started so far has settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self):
        """Cancel every run and wait for them to settle."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_all()

    # =========================================
    # Glossary extraction
    # =========================================

    def start_extraction(self, job_id: str) -> Optional[asyncio.Task]:
        """
        Launch glossary extraction for a job in EXTRACTING_GLOSSARY.

        Returns:
            The run's task, or None if the job is gone or in another state
        """
        job = self.registry.get(job_id)
        if job is None or job.status != JobStatus.EXTRACTING_GLOSSARY:
            return None
        token = self.registry.acquire_handle(job_id)
        self.registry.report_progress(job_id, 0, PROGRESS_TEXT_EXTRACTING)
        self.registry.mark_active(job_id)
        return self._spawn(self.run_extraction(job_id, token), name=f"extract:{job_id}")

    async def run_extraction(self, job_id: str, token: CancellationToken):
        """Extract a glossary and hand the job over for validation."""
        try:
            job = self.registry.get(job_id)
            if job is None:
                return
            sample = job.content[:self.config.glossary_sample_chars]

            logger.info(f"Extracting glossary: {job.name}")
            glossary = await token.run(self.provider.extract_glossary(
                sample, job.source_lang, job.target_lang, token,
            ))
            token.raise_if_cancelled()

            glossary = clean_terms(glossary)
            self.registry.transition(
                job_id, JobStatus.AWAITING_VALIDATION,
                glossary=glossary, progress_text=None,
            )
            logger.info(f"Glossary ready for review: {job.name} ({len(glossary)} terms)")

        except (AbortError, asyncio.CancelledError) as e:
            self._mark_cancelled(job_id)
            if isinstance(e, asyncio.CancelledError):
                raise
        except Exception as e:
            if token.cancelled:
                self._mark_cancelled(job_id)
            else:
                self._mark_failed(job_id, f"Glossary extraction failed: {e}")
        finally:
            self.registry.release_handle(job_id, token)
            self.registry.mark_inactive(job_id)

    # =========================================
    # Translation
    # =========================================

    def start_translation(self, job_id: str) -> Optional[asyncio.Task]:
        """
        Admit a PENDING job: move it to PROCESSING and launch its run.

        Returns:
            The run's task, or None if the job is gone or not PENDING
        """
        job = self.registry.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            return None
        token = self.registry.acquire_handle(job_id)
        self.registry.transition(
            job_id, JobStatus.PROCESSING,
            progress=PROGRESS_SETUP_PERCENT, progress_text=PROGRESS_TEXT_PREPARING,
        )
        self.registry.mark_active(job_id)
        return self._spawn(self.run_translation(job_id, token), name=f"translate:{job_id}")

    async def run_translation(self, job_id: str, token: CancellationToken):
        """Translate every chunk of a PROCESSING job and store the result."""
        try:
            job = self.registry.get(job_id)
            if job is None:
                return

            chunks = self.chunker.create_chunks(job.content)
            if not chunks:
                logger.info(f"Job {job.name}: no subtitle entries, nothing to translate")
                token.raise_if_cancelled()
                self._mark_completed(job_id, "")
                return

            tracker = ProgressTracker(job_id=job_id, job_name=job.name, total_chunks=len(chunks))
            tracker.add_callback(
                lambda percent, message, data: self.registry.report_progress(job_id, percent, message)
            )
            if self.config.log_progress:
                tracker.add_callback(create_logging_callback(log_interval=max(1, len(chunks) // 4)))

            logger.info(f"Translating {job.name}: {len(chunks)} chunks")

            async def translate_one(chunk: SubtitleChunk, run_token: CancellationToken) -> str:
                return await self.provider.translate_chunk(
                    chunk.text,
                    job.source_lang,
                    job.target_lang,
                    job.prompt,
                    job.glossary,
                    job.model,
                    run_token,
                    chunk.number,
                    len(chunks),
                )

            processor = ChunkProcessor(
                translate_func=translate_one,
                max_concurrency=self.config.max_chunk_concurrency,
            )
            results = await processor.process_all(
                chunks, token, on_chunk_done=lambda done, total: tracker.chunk_completed(),
            )

            # A cancel that arrived while the last chunk settled still wins
            token.raise_if_cancelled()

            aggregated = self.aggregator.aggregate(results)
            self._mark_completed(job_id, aggregated.text)
            logger.info(
                f"Job completed: {job.name} "
                f"({aggregated.chunk_count} chunks, {aggregated.total_chars} chars)"
            )

        except (AbortError, asyncio.CancelledError) as e:
            self._mark_cancelled(job_id)
            if isinstance(e, asyncio.CancelledError):
                raise
        except Exception as e:
            if token.cancelled:
                self._mark_cancelled(job_id)
            else:
                self._mark_failed(job_id, str(e))
        finally:
            self.registry.release_handle(job_id, token)
            self.registry.mark_inactive(job_id)

    # =========================================
    # Terminal writes
    # =========================================

    def _mark_completed(self, job_id: str, result: str):
        self.registry.transition(
            job_id, JobStatus.COMPLETED,
            result=result, progress=PROGRESS_DONE_PERCENT,
            progress_text=PROGRESS_TEXT_COMPLETED,
        )

    def _mark_cancelled(self, job_id: str):
        job = self.registry.get(job_id)
        if job is None or not job.is_running:
            return
        self.registry.cancel(job_id)
        logger.info(f"Job cancelled: {job.name}")

    def _mark_failed(self, job_id: str, error: str):
        job = self.registry.get(job_id)
        if job is None or not job.is_running:
            return
        self.registry.fail(job_id, error)
        logger.error(f"Job failed: {job.name} - {error}")

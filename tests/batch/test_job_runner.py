"""
Unit tests for core.batch.job_runner module.

Runs extraction and translation against the in-memory FakeProvider.
"""

import asyncio

import pytest

from core.batch.job import JobStatus, SubtitleJob
from core.batch.job_runner import JobRunner, RunnerConfig
from core.batch.registry import JobRegistry
from core.chunker import SubtitleChunker


def add_pending(registry: JobRegistry, content: str, **kwargs) -> SubtitleJob:
    job = registry.add(SubtitleJob.create(
        file_name="ep01.srt", content=content, prompt="Translate naturally.", **kwargs
    ))
    return registry.transition(job.id, JobStatus.PENDING)


def add_extracting(registry: JobRegistry, content: str) -> SubtitleJob:
    return registry.add(SubtitleJob.create(
        file_name="ep01.srt", content=content, prompt="p", detect_glossary=True
    ))


def record_progress(registry: JobRegistry, job_id: str):
    seen = []

    def listener(changed_id, job):
        if changed_id == job_id and job is not None:
            if not seen or seen[-1] != (job.status, job.progress):
                seen.append((job.status, job.progress))

    registry.subscribe(listener)
    return seen


@pytest.fixture
def registry():
    return JobRegistry()


class TestTranslationRun:
    """Tests for start_translation() / run_translation()."""

    @pytest.mark.asyncio
    async def test_three_chunk_job(self, registry, fake_provider, srt_factory):
        """151 entries -> 3 chunks, progress 5 -> 35 -> 65 -> 95 -> 100."""
        content = srt_factory(151)
        job = add_pending(registry, content)
        seen = record_progress(registry, job.id)
        runner = JobRunner(registry, fake_provider, config=RunnerConfig(log_progress=False))

        task = runner.start_translation(job.id)
        assert registry.get(job.id).status == JobStatus.PROCESSING
        assert registry.active_count == 1
        await task

        done = registry.get(job.id)
        assert done.status == JobStatus.COMPLETED
        assert done.progress == 100
        assert done.progress_text == "Completed"
        assert [p for _, p in seen] == [5, 35, 65, 95, 100]

        chunks = SubtitleChunker().create_chunks(content)
        assert done.result == "\n\n".join(f"[Vietnamese] {c.text}" for c in chunks)
        assert [c["chunk_number"] for c in fake_provider.translate_calls] == [1, 2, 3]
        assert all(c["chunk_total"] == 3 for c in fake_provider.translate_calls)

        assert registry.active_count == 0
        assert registry.handle(job.id) is None

    @pytest.mark.asyncio
    async def test_empty_document_completes(self, registry, fake_provider):
        job = add_pending(registry, "  \n\n ")
        runner = JobRunner(registry, fake_provider)
        await runner.start_translation(job.id)

        done = registry.get(job.id)
        assert done.status == JobStatus.COMPLETED
        assert done.result == ""
        assert done.progress == 100
        assert fake_provider.translate_calls == []

    @pytest.mark.asyncio
    async def test_cancelled_empty_document_stays_cancelled(self, registry, fake_provider):
        """A cancel landing before the run starts wins even with nothing to translate."""
        job = add_pending(registry, "")
        runner = JobRunner(registry, fake_provider)
        task = runner.start_translation(job.id)
        assert registry.abort(job.id) is True
        await task

        cancelled = registry.get(job.id)
        assert cancelled.status == JobStatus.CANCELLED
        assert cancelled.result is None
        assert cancelled.progress_text == "Cancelled"
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_reverse_completion_order(self, registry, fake_provider, srt_factory):
        fake_provider.delays = {1: 0.03, 2: 0.02, 3: 0.01}
        job = add_pending(registry, srt_factory(9))
        runner = JobRunner(registry, fake_provider, chunker=SubtitleChunker(chunk_size=3))
        await runner.start_translation(job.id)

        assert fake_provider.completed_order == [3, 2, 1]
        result = registry.get(job.id).result
        assert result.index("[Vietnamese] 1\n") < result.index("[Vietnamese] 4\n") < result.index("[Vietnamese] 7\n")

    @pytest.mark.asyncio
    async def test_passes_job_settings(self, registry, fake_provider, sample_srt):
        job = add_pending(registry, sample_srt, target_lang="French", model="gemini-2.5-pro")
        registry.update(job.id, glossary={"Naruto": "Naruto (homme)"})
        runner = JobRunner(registry, fake_provider)
        await runner.start_translation(job.id)

        call = fake_provider.translate_calls[0]
        assert call["model"] == "gemini-2.5-pro"
        assert call["instruction"] == "Translate naturally."
        assert call["glossary"] == {"Naruto": "Naruto (homme)"}
        assert registry.get(job.id).result.startswith("[French] ")

    @pytest.mark.asyncio
    async def test_chunk_failure_fails_job(self, registry, fake_provider, srt_factory):
        fake_provider.fail_chunks = {2: RuntimeError("quota exceeded")}
        job = add_pending(registry, srt_factory(151))
        runner = JobRunner(registry, fake_provider)
        await runner.start_translation(job.id)

        failed = registry.get(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error == "Error translating chunk 2/3: quota exceeded"
        assert failed.result is None
        assert failed.progress == 0
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_start_requires_pending(self, registry, fake_provider, sample_srt):
        job = registry.add(SubtitleJob.create(file_name="a.srt", content=sample_srt, prompt="p"))
        runner = JobRunner(registry, fake_provider)
        assert runner.start_translation(job.id) is None
        assert runner.start_translation("job_missing") is None
        assert registry.get(job.id).status == JobStatus.IDLE


class TestCancellation:
    """Cancellation and deletion during a translation run."""

    @pytest.mark.asyncio
    async def test_cancel_mid_run(self, registry, fake_provider, srt_factory, settle_loop):
        fake_provider.gate = asyncio.Event()
        job = add_pending(registry, srt_factory(151))
        runner = JobRunner(registry, fake_provider)
        runner.start_translation(job.id)
        await settle_loop()
        assert fake_provider.in_flight == 3

        assert registry.abort(job.id) is True
        await runner.wait_all()

        cancelled = registry.get(job.id)
        assert cancelled.status == JobStatus.CANCELLED
        assert cancelled.progress_text == "Cancelled"
        assert cancelled.result is None
        assert fake_provider.in_flight == 0
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_cancel_wins_race_with_last_chunk(self, registry, fake_provider, srt_factory, settle_loop):
        """Chunks resolving in the same step as the cancel never yield COMPLETED."""
        fake_provider.gate = asyncio.Event()
        job = add_pending(registry, srt_factory(151))
        runner = JobRunner(registry, fake_provider)
        runner.start_translation(job.id)
        await settle_loop()

        fake_provider.gate.set()
        registry.abort(job.id)
        await runner.wait_all()

        assert registry.get(job.id).status == JobStatus.CANCELLED
        assert registry.get(job.id).result is None

    @pytest.mark.asyncio
    async def test_delete_mid_run(self, registry, fake_provider, srt_factory, settle_loop):
        fake_provider.gate = asyncio.Event()
        job = add_pending(registry, srt_factory(151))
        runner = JobRunner(registry, fake_provider)
        runner.start_translation(job.id)
        await settle_loop()

        registry.remove(job.id)
        assert registry.active_count == 1
        await runner.wait_all()

        assert job.id not in registry
        assert registry.active_count == 0
        assert fake_provider.in_flight == 0

    @pytest.mark.asyncio
    async def test_cancel_all(self, registry, fake_provider, srt_factory, settle_loop):
        fake_provider.gate = asyncio.Event()
        job = add_pending(registry, srt_factory(10))
        runner = JobRunner(registry, fake_provider)
        runner.start_translation(job.id)
        await settle_loop()

        await runner.cancel_all()
        assert runner.running_tasks == 0
        assert registry.get(job.id).status == JobStatus.CANCELLED


class TestExtractionRun:
    """Tests for start_extraction() / run_extraction()."""

    @pytest.mark.asyncio
    async def test_success_awaits_validation(self, registry, fake_provider, sample_srt):
        fake_provider.glossary = {" Naruto ": "Naruto (nam)", "": "dropped"}
        job = add_extracting(registry, sample_srt)
        runner = JobRunner(registry, fake_provider)

        task = runner.start_extraction(job.id)
        assert registry.get(job.id).progress_text == "Extracting glossary..."
        await task

        ready = registry.get(job.id)
        assert ready.status == JobStatus.AWAITING_VALIDATION
        assert ready.glossary == {"Naruto": "Naruto (nam)"}
        assert registry.handle(job.id) is None

    @pytest.mark.asyncio
    async def test_sample_is_truncated(self, registry, fake_provider):
        job = add_extracting(registry, "x" * 30000)
        runner = JobRunner(registry, fake_provider, config=RunnerConfig(glossary_sample_chars=20000))
        await runner.start_extraction(job.id)
        assert len(fake_provider.extract_calls[0]["text"]) == 20000

    @pytest.mark.asyncio
    async def test_failure_message(self, registry, fake_provider, sample_srt):
        fake_provider.glossary_error = RuntimeError("invalid JSON")
        job = add_extracting(registry, sample_srt)
        runner = JobRunner(registry, fake_provider)
        await runner.start_extraction(job.id)

        failed = registry.get(job.id)
        assert failed.status == JobStatus.FAILED
        assert failed.error == "Glossary extraction failed: invalid JSON"
        assert failed.glossary is None

    @pytest.mark.asyncio
    async def test_cancel_during_extraction(self, registry, fake_provider, sample_srt, settle_loop):
        fake_provider.gate = asyncio.Event()
        job = add_extracting(registry, sample_srt)
        runner = JobRunner(registry, fake_provider)
        runner.start_extraction(job.id)
        await settle_loop()

        registry.abort(job.id)
        await runner.wait_all()

        cancelled = registry.get(job.id)
        assert cancelled.status == JobStatus.CANCELLED
        assert cancelled.glossary is None

    @pytest.mark.asyncio
    async def test_extraction_counts_as_active(self, registry, fake_provider, sample_srt, settle_loop):
        fake_provider.gate = asyncio.Event()
        job = add_extracting(registry, sample_srt)
        runner = JobRunner(registry, fake_provider)
        runner.start_extraction(job.id)
        await settle_loop()

        assert registry.active_count == 1
        fake_provider.gate.set()
        await runner.wait_all()
        assert registry.active_count == 0

    @pytest.mark.asyncio
    async def test_failed_extraction_releases_slot(self, registry, fake_provider, sample_srt):
        fake_provider.glossary_error = RuntimeError("invalid JSON")
        job = add_extracting(registry, sample_srt)
        runner = JobRunner(registry, fake_provider)
        await runner.start_extraction(job.id)

        assert registry.get(job.id).status == JobStatus.FAILED
        assert registry.active_count == 0

"""
Unit tests for core.batch.job module.

Tests the SubtitleJob model and its lifecycle state machine.
"""

import dataclasses

import pytest

from core.batch.job import TRANSITIONS, JobStatus, SubtitleJob
from core.errors import InvalidTransitionError


def make_job(detect_glossary=False, **kwargs) -> SubtitleJob:
    return SubtitleJob.create(
        file_name="Episode 01.srt",
        content="1\n00:00:01,000 --> 00:00:02,000\nHello",
        prompt="Translate naturally.",
        detect_glossary=detect_glossary,
        **kwargs,
    )


def walk(job: SubtitleJob, *targets: JobStatus, **changes) -> SubtitleJob:
    for target in targets:
        job = job.transition(target, **changes)
    return job


class TestJobCreation:
    """Tests for SubtitleJob.create() / from_file()."""

    def test_initial_state_without_glossary(self):
        job = make_job()
        assert job.status == JobStatus.IDLE
        assert job.progress == 0
        assert job.result is None
        assert job.error is None
        assert job.name == "Episode 01"
        assert job.id.startswith("job_")

    def test_initial_state_with_glossary(self):
        job = make_job(detect_glossary=True)
        assert job.status == JobStatus.EXTRACTING_GLOSSARY
        assert job.is_running

    def test_unique_ids(self):
        assert make_job().id != make_job().id

    def test_from_file_strips_bom(self, temp_dir):
        path = temp_dir / "movie.srt"
        path.write_bytes("\ufeff1\n00:00:01,000 --> 00:00:02,000\nHi".encode("utf-8"))
        job = SubtitleJob.from_file(path, prompt="p")
        assert job.content.startswith("1\n")
        assert job.file_name == "movie.srt"

    def test_output_filename(self):
        job = make_job(target_lang="Vietnamese")
        assert job.output_filename == "Episode 01_vietnamese.srt"

    def test_snapshots_are_immutable(self):
        job = make_job()
        with pytest.raises(dataclasses.FrozenInstanceError):
            job.status = JobStatus.COMPLETED


class TestTransitions:
    """Tests for the lifecycle state machine."""

    def test_happy_path_without_glossary(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING)
        job = job.transition(JobStatus.COMPLETED, result="translated")
        assert job.status == JobStatus.COMPLETED
        assert job.result == "translated"
        assert job.is_finished

    def test_happy_path_with_glossary(self):
        job = make_job(detect_glossary=True)
        job = job.transition(JobStatus.AWAITING_VALIDATION, glossary={"A": "B"})
        job = walk(job, JobStatus.IDLE, JobStatus.PENDING, JobStatus.PROCESSING)
        assert job.glossary == {"A": "B"}

    @pytest.mark.parametrize("source,target", [
        (JobStatus.IDLE, JobStatus.PROCESSING),
        (JobStatus.IDLE, JobStatus.COMPLETED),
        (JobStatus.PENDING, JobStatus.COMPLETED),
        (JobStatus.EXTRACTING_GLOSSARY, JobStatus.PENDING),
        (JobStatus.AWAITING_VALIDATION, JobStatus.PENDING),
        (JobStatus.COMPLETED, JobStatus.PENDING),
    ])
    def test_illegal_transitions(self, source, target):
        job = dataclasses.replace(make_job(), status=source)
        with pytest.raises(InvalidTransitionError):
            job.transition(target)

    def test_completed_is_terminal(self):
        assert TRANSITIONS[JobStatus.COMPLETED] == frozenset()

    def test_result_only_when_completed(self):
        """result is set iff COMPLETED; error iff FAILED."""
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING)
        failed = job.fail("Error translating chunk 2/3: boom")
        assert failed.result is None
        assert failed.error == "Error translating chunk 2/3: boom"
        assert failed.progress == 0

        completed = job.transition(JobStatus.COMPLETED)
        assert completed.result == ""
        assert completed.error is None

    def test_fail_without_message(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING)
        assert job.transition(JobStatus.FAILED).error == "Unknown error"

    def test_cancel_sets_text(self):
        job = walk(make_job(), JobStatus.PENDING).cancel()
        assert job.status == JobStatus.CANCELLED
        assert job.progress_text == "Cancelled"
        assert job.progress == 0

    def test_awaiting_validation_can_be_cancelled(self):
        job = make_job(detect_glossary=True).transition(JobStatus.AWAITING_VALIDATION)
        assert job.cancel().status == JobStatus.CANCELLED


class TestRetry:
    """Tests for SubtitleJob.retry()."""

    def test_failed_job_without_glossary_goes_pending(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING).fail("boom")
        retried = job.retry()
        assert retried.status == JobStatus.PENDING
        assert retried.error is None
        assert retried.progress == 0
        assert retried.progress_text is None

    def test_cancelled_job_with_glossary_extracts_again(self):
        job = make_job(detect_glossary=True).cancel()
        assert job.retry().status == JobStatus.EXTRACTING_GLOSSARY

    def test_flagged_job_cannot_skip_validation(self):
        job = make_job(detect_glossary=True).fail("Glossary extraction failed: x")
        with pytest.raises(InvalidTransitionError):
            job.transition(JobStatus.PENDING)

    def test_completed_job_cannot_retry(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED)
        assert job.can_retry is False
        with pytest.raises(InvalidTransitionError):
            job.retry()

    def test_retry_is_repeatable(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING)
        for _ in range(3):
            job = walk(job.fail("boom").retry(), JobStatus.PROCESSING)
        assert job.status == JobStatus.PROCESSING


class TestProgress:
    """Tests for with_progress() / with_changes()."""

    def test_progress_is_monotonic_and_clamped(self):
        job = walk(make_job(), JobStatus.PENDING, JobStatus.PROCESSING, progress=5)
        job = job.with_progress(65, "Translating chunk 2/3")
        job = job.with_progress(35, "Translating chunk 1/3")
        assert job.progress == 65
        assert job.progress_text == "Translating chunk 2/3"
        assert job.with_progress(250).progress == 100

    def test_with_changes_rejects_lifecycle_fields(self):
        job = make_job()
        with pytest.raises(ValueError):
            job.with_changes(status=JobStatus.COMPLETED)
        with pytest.raises(ValueError):
            job.with_changes(result="x")

    def test_to_dict(self):
        data = make_job().to_dict()
        assert data["status"] == "idle"
        assert data["has_result"] is False
        assert "content" not in data

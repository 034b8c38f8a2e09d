"""Tests for the job lifecycle state machine."""

from pathlib import Path

import pytest

from mediagrab.errors import InvalidTransitionError
from mediagrab.jobs.models import ErrorType, Job, JobStatus, MediaFormat


def _job() -> Job:
    return Job(url="https://youtu.be/abc", formats=[MediaFormat.VIDEO])


class TestLifecycle:
    def test_new_job_is_queued(self) -> None:
        job = _job()
        assert job.status is JobStatus.QUEUED
        assert job.progress == 0
        assert job.completed_at is None

    def test_start_sets_small_positive_progress(self) -> None:
        job = _job()
        job.start(10)
        assert job.status is JobStatus.PROCESSING
        assert job.progress == 10
        assert job.started_at is not None

    def test_complete(self) -> None:
        job = _job()
        job.start()
        job.record_file(MediaFormat.VIDEO, Path("/tmp/x.mp4"))
        job.complete()
        assert job.status is JobStatus.COMPLETED
        assert job.progress == 100
        assert job.completed_at is not None

    def test_complete_requires_files(self) -> None:
        job = _job()
        job.start()
        with pytest.raises(InvalidTransitionError):
            job.complete()

    def test_fail_keeps_last_progress(self) -> None:
        job = _job()
        job.start(10)
        job.advance(50)
        job.fail("boom", ErrorType.BOT_DETECTION)
        assert job.status is JobStatus.FAILED
        assert job.progress == 50
        assert job.error == "boom"
        assert job.error_type is ErrorType.BOT_DETECTION

    def test_cannot_skip_processing(self) -> None:
        job = _job()
        with pytest.raises(InvalidTransitionError):
            job.fail("x", ErrorType.GENERAL_ERROR)
        with pytest.raises(InvalidTransitionError):
            job.complete()

    @pytest.mark.parametrize("terminal", ["completed", "failed"])
    def test_terminal_states_are_final(self, terminal: str) -> None:
        job = _job()
        job.start()
        if terminal == "completed":
            job.record_file(MediaFormat.VIDEO, Path("/tmp/x.mp4"))
            job.complete()
        else:
            job.fail("x", ErrorType.GENERAL_ERROR)

        with pytest.raises(InvalidTransitionError):
            job.start()
        with pytest.raises(InvalidTransitionError):
            job.fail("again", ErrorType.GENERAL_ERROR)
        with pytest.raises(InvalidTransitionError):
            job.advance(60)
        with pytest.raises(InvalidTransitionError):
            job.record_file(MediaFormat.AUDIO, Path("/tmp/y.mp3"))


class TestProgress:
    def test_progress_never_decreases(self) -> None:
        job = _job()
        job.start(20)
        job.advance(10)
        assert job.progress == 20

    def test_progress_stays_below_100_while_processing(self) -> None:
        job = _job()
        job.start()
        job.advance(150)
        assert job.progress == 99

    def test_recording_a_file_clears_its_error(self) -> None:
        job = _job()
        job.start()
        job.record_format_error(MediaFormat.VIDEO, "failed")
        job.record_file(MediaFormat.VIDEO, Path("/tmp/x.mp4"))
        assert MediaFormat.VIDEO not in job.format_errors


def test_status_terminal_flag() -> None:
    assert JobStatus.COMPLETED.is_terminal
    assert JobStatus.FAILED.is_terminal
    assert not JobStatus.QUEUED.is_terminal
    assert not JobStatus.PROCESSING.is_terminal

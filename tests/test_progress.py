"""Tests for the analysis progress state machine."""

import pytest

from quickstats.core.errors import InvalidTransitionError
from quickstats.core.progress import AnalysisProgress, AnalysisStage, ProgressTracker


def test_happy_path():
    t = ProgressTracker()

    t.advance(AnalysisStage.initializing, 10, "Preparing")
    t.advance(AnalysisStage.initializing, 15, "Uploading")
    t.advance(AnalysisStage.processing, 20, "Uploaded")
    t.advance(AnalysisStage.processing, 50, "Analyzing")
    t.complete("done")

    assert t.stage is AnalysisStage.completed
    assert t.current.progress == 100.0
    assert [p.stage for p in t.history][0] is AnalysisStage.idle


def test_cannot_skip_from_idle_to_completed():
    t = ProgressTracker()

    with pytest.raises(InvalidTransitionError):
        t.complete("done")


def test_error_is_retryable():
    t = ProgressTracker()
    t.advance(AnalysisStage.initializing, 10)
    t.fail("Upload failed")

    t.advance(AnalysisStage.initializing, 10, "retry")

    assert t.stage is AnalysisStage.initializing


def test_completed_must_reset_before_restart():
    t = ProgressTracker()
    t.advance(AnalysisStage.initializing, 10)
    t.advance(AnalysisStage.processing, 20)
    t.complete("done")

    with pytest.raises(InvalidTransitionError):
        t.advance(AnalysisStage.initializing, 10)

    t.reset()
    t.advance(AnalysisStage.initializing, 10)


@pytest.mark.parametrize(
    "stage,pct",
    [
        (AnalysisStage.completed, 90),
        (AnalysisStage.error, 40),
        (AnalysisStage.idle, 5),
        (AnalysisStage.processing, 120),
    ],
)
def test_invalid_stage_progress_combinations(stage, pct):
    with pytest.raises(ValueError):
        AnalysisProgress(stage, pct, "x")


def test_to_api():
    assert AnalysisProgress(AnalysisStage.processing, 30, "Backend is analyzing video...").to_api() == {
        "stage": "processing",
        "progress": 30,
        "message": "Backend is analyzing video...",
    }

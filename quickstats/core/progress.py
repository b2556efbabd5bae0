from dataclasses import dataclass
from enum import Enum

from .errors import InvalidTransitionError


class AnalysisStage(str, Enum):
    idle = "idle"
    initializing = "initializing"
    processing = "processing"
    completed = "completed"
    error = "error"


TRANSITIONS: dict[AnalysisStage, frozenset[AnalysisStage]] = {
    AnalysisStage.idle: frozenset({AnalysisStage.initializing}),
    AnalysisStage.initializing: frozenset(
        {AnalysisStage.initializing, AnalysisStage.processing, AnalysisStage.error}
    ),
    AnalysisStage.processing: frozenset(
        {AnalysisStage.processing, AnalysisStage.completed, AnalysisStage.error}
    ),
    AnalysisStage.completed: frozenset({AnalysisStage.idle}),
    # error -> initializing is a retry of the same video
    AnalysisStage.error: frozenset({AnalysisStage.idle, AnalysisStage.initializing}),
}


@dataclass(frozen=True)
class AnalysisProgress:
    stage: AnalysisStage
    progress: float  # 0-100
    message: str = ""

    def __post_init__(self):
        if not 0.0 <= self.progress <= 100.0:
            raise ValueError(f"progress out of range: {self.progress}")
        if self.stage is AnalysisStage.completed and self.progress != 100.0:
            raise ValueError("completed stage must report 100% progress")
        if self.stage in (AnalysisStage.idle, AnalysisStage.error) and self.progress != 0.0:
            raise ValueError(f"{self.stage.value} stage must report 0% progress")

    def to_api(self) -> dict:
        return {"stage": self.stage.value, "progress": self.progress, "message": self.message}


IDLE = AnalysisProgress(AnalysisStage.idle, 0.0, "")


class ProgressTracker:
    """Holds the current stage and rejects moves the table above does not allow."""

    def __init__(self):
        self.current = IDLE
        self.history: list[AnalysisProgress] = [IDLE]

    @property
    def stage(self) -> AnalysisStage:
        return self.current.stage

    def advance(self, stage: AnalysisStage, progress: float, message: str = "") -> AnalysisProgress:
        if stage not in TRANSITIONS[self.current.stage]:
            raise InvalidTransitionError(
                f"cannot move from {self.current.stage.value} to {stage.value}"
            )
        self.current = AnalysisProgress(stage, float(progress), message)
        self.history.append(self.current)
        return self.current

    def fail(self, message: str) -> AnalysisProgress:
        return self.advance(AnalysisStage.error, 0.0, message)

    def complete(self, message: str) -> AnalysisProgress:
        return self.advance(AnalysisStage.completed, 100.0, message)

    def reset(self) -> AnalysisProgress:
        if self.current.stage is not AnalysisStage.idle:
            # any stage may be abandoned back to idle (cancel / new video)
            self.current = IDLE
            self.history.append(IDLE)
        return self.current

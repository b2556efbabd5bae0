from dataclasses import dataclass, field, asdict
from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class JobStatus(str, Enum):
    queued = "queued"
    processing = "processing"
    completed = "completed"
    failed = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.completed, JobStatus.failed})


# ---------- Backend wire shapes ----------
class BackendScoreEvent(BaseModel):
    type: Literal["score"] = "score"
    frame: int = Field(ge=0)
    timestamp: float = Field(ge=0.0)  # seconds
    confidence: float = Field(ge=0.0, le=1.0)
    mode: str = "nbaction_exact"


class BackendVideoInfo(BaseModel):
    fps: float = Field(ge=0.0)
    frames: int = Field(ge=0)


class BackendResults(BaseModel):
    video: BackendVideoInfo
    scores: List[BackendScoreEvent] = Field(default_factory=list)
    total_scores: Optional[int] = None

    @model_validator(mode="after")
    def _default_total(self):
        if self.total_scores is None:
            self.total_scores = len(self.scores)
        return self


class UploadResponse(BaseModel):
    job_id: str
    status: str
    message: str = ""


class UploadJob(BaseModel):
    """Read-only snapshot of a backend job, refreshed by status reads."""

    job_id: str
    status: JobStatus
    filename: Optional[str] = None
    created_at: Optional[str] = None
    results: Optional[BackendResults] = None
    video_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


# ---------- Display model ----------
@dataclass(frozen=True)
class Team:
    id: str
    label: str
    color: str


@dataclass(frozen=True)
class GameEvent:
    id: str
    team_id: str
    timestamp: float
    confidence: float
    source: str
    type: str = "score"  # backend only reports score events
    score_delta: int = 2
    shot_type: str = "2pt"
    player_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class TeamSummary:
    points: int = 0
    two_point_scores: int = 0
    three_point_scores: int = 0
    foul_shots: int = 0
    shot_attempts: int = 0
    three_point_attempts: int = 0
    off_rebounds: int = 0
    def_rebounds: int = 0
    turnovers: int = 0
    blocks: int = 0
    dunks: int = 0
    assists: int = 0
    passes: int = 0
    dribbles: int = 0
    players: List[dict] = field(default_factory=list)


@dataclass(frozen=True)
class VideoInfo:
    filename: str
    duration: float
    url: Optional[str] = None


@dataclass
class GameData:
    video: VideoInfo
    teams: List[Team]
    events: List[GameEvent]
    summary: Dict[str, TeamSummary]
    highlights: List[dict] = field(default_factory=list)

    def to_api(self) -> dict:
        return asdict(self)


# ---------- Local file ----------
@dataclass
class VideoFile:
    path: Path
    url: str
    name: str
    size: int
    duration: float = 0.0  # set once media metadata is decoded

    @classmethod
    def from_path(cls, path: str | Path) -> "VideoFile":
        p = Path(path).resolve()
        return cls(path=p, url=p.as_uri(), name=p.name, size=p.stat().st_size)

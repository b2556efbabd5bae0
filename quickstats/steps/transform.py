from typing import Any, Mapping, Optional

from quickstats.core.models import (
    BackendResults,
    GameData,
    GameEvent,
    Team,
    TeamSummary,
    VideoInfo,
)

TEAM = Team(id="team", label="Team", color="#3b82f6")
PROCESSED_FILENAME = "processed_video.mp4"
# The backend never reports shot type, so every score counts as a two.
ASSUMED_SCORE_DELTA = 2


def transform_backend_data(
    backend_results: BackendResults | Mapping[str, Any],
    video_url: Optional[str] = None,
) -> GameData:
    """
    Map the backend's raw results onto the display model.
    Single synthetic team; summary counters the backend does not populate stay 0.
    """
    results = (
        backend_results
        if isinstance(backend_results, BackendResults)
        else BackendResults.model_validate(backend_results)
    )
    fps = results.video.fps
    duration = results.video.frames / fps if fps > 0 else 0.0

    events = []
    for score in results.scores:
        ts = score.timestamp
        if duration > 0:
            ts = min(ts, duration)
        events.append(
            GameEvent(
                id=f"score-{score.frame}",
                team_id=TEAM.id,
                timestamp=ts,
                confidence=score.confidence,
                source=score.mode,
                score_delta=ASSUMED_SCORE_DELTA,
            )
        )

    total = results.total_scores or 0
    summary = TeamSummary(
        points=total * ASSUMED_SCORE_DELTA,
        two_point_scores=total,
    )

    return GameData(
        video=VideoInfo(filename=PROCESSED_FILENAME, duration=duration, url=video_url),
        teams=[TEAM],
        events=events,
        summary={TEAM.id: summary},
    )


def synthetic_completed_results() -> dict:
    """Placeholder for a job the backend already purged (see AnalysisSession)."""
    return {
        "scores": [],
        "total_scores": 0,
        "video": {"frames": 1000, "fps": 30},
    }

from collections import Counter
from typing import Iterable, List

from quickstats.core.models import GameData, GameEvent

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5

CONFIDENCE_RANGES = [
    (0.9, 1.0, "90-100%"),
    (0.8, 0.9, "80-89%"),
    (0.7, 0.8, "70-79%"),
    (0.6, 0.7, "60-69%"),
    (0.5, 0.6, "50-59%"),
    (0.0, 0.5, "0-49%"),
]


def format_time(timestamp: float) -> str:
    minutes = int(timestamp // 60)
    seconds = int(timestamp % 60)
    return f"{minutes}:{seconds:02d}"


def _scores(events: Iterable[GameEvent]) -> List[GameEvent]:
    return [e for e in events if e.type == "score"]


def score_progression(events: Iterable[GameEvent]) -> List[dict]:
    ordered = sorted(_scores(events), key=lambda e: e.timestamp)
    return [
        {
            "timestamp": e.timestamp,
            "cumulative_scores": i + 1,
            "confidence": e.confidence,
            "time_formatted": format_time(e.timestamp),
        }
        for i, e in enumerate(ordered)
    ]


def score_frequency(events: Iterable[GameEvent]) -> List[dict]:
    """Scores per one-minute bucket, only buckets that saw a score."""
    buckets = Counter(int(e.timestamp // 60) for e in _scores(events))
    return [
        {"minute": m, "count": buckets[m], "time_label": f"{m}:00-{m + 1}:00"}
        for m in sorted(buckets)
    ]


def confidence_distribution(events: Iterable[GameEvent]) -> List[dict]:
    scores = _scores(events)
    out = []
    for lo, hi, label in CONFIDENCE_RANGES:
        # top bucket is closed so a perfect 1.0 is counted
        if hi >= 1.0:
            count = sum(1 for e in scores if lo <= e.confidence <= hi)
        else:
            count = sum(1 for e in scores if lo <= e.confidence < hi)
        out.append({"range": label, "count": count})
    return out


def score_breakdown(events: Iterable[GameEvent]) -> List[dict]:
    scores = _scores(events)
    return [
        {"name": "Total Scores", "value": len(scores), "color": "#10b981"},
        {
            "name": "High Confidence",
            "value": sum(1 for e in scores if e.confidence >= HIGH_CONFIDENCE),
            "color": "#22c55e",
        },
        {
            "name": "Medium Confidence",
            "value": sum(1 for e in scores if MEDIUM_CONFIDENCE <= e.confidence < HIGH_CONFIDENCE),
            "color": "#f59e0b",
        },
        {
            "name": "Low Confidence",
            "value": sum(1 for e in scores if e.confidence < MEDIUM_CONFIDENCE),
            "color": "#ef4444",
        },
    ]


def detection_sources(events: Iterable[GameEvent]) -> dict[str, int]:
    return dict(Counter(e.source for e in events))


def average_confidence(events: Iterable[GameEvent]) -> float:
    values = [e.confidence for e in events]
    if not values:
        return 0.0
    return sum(values) / len(values)


def build_report(game: GameData) -> dict:
    events = game.events
    return {
        "total_scores": len(_scores(events)),
        "average_confidence": round(average_confidence(events), 4),
        "score_progression": score_progression(events),
        "score_frequency": score_frequency(events),
        "confidence_distribution": confidence_distribution(events),
        "score_breakdown": score_breakdown(events),
        "detection_sources": detection_sources(events),
        "video_duration": game.video.duration,
    }

"""Overview analytics derived from the session list."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from voicefit.core.constants import DEFAULT_ANALYTICS
from voicefit.core.models import WorkoutSession
from voicefit.utils.date_ranges import parse_date_or_none


def session_volume(session: WorkoutSession) -> int:
    """Approximate total repetitions: missing sets count as 1, missing reps as 0."""
    return sum((exercise.sets or 1) * (exercise.reps or 0) for exercise in session.exercises)


def _date_label(value: str) -> str:
    parsed = parse_date_or_none(value)
    if parsed is None:
        return value
    return f"{parsed.strftime('%b')} {parsed.day}"


def volume_trend(
    sessions: Iterable[WorkoutSession],
    limit: int = DEFAULT_ANALYTICS["trend_sessions"],
) -> List[Dict[str, Any]]:
    """Volume of the most recent ``limit`` sessions, oldest first."""
    ordered = sorted(sessions, key=lambda session: (session.date, session.created_at))
    recent = ordered[-limit:] if limit > 0 else []
    return [
        {
            "date": session.date,
            "label": _date_label(session.date),
            "volume": session_volume(session),
        }
        for session in recent
    ]


def top_exercises(
    sessions: Iterable[WorkoutSession],
    limit: int = DEFAULT_ANALYTICS["top_exercises"],
) -> List[Dict[str, Any]]:
    """Most frequent exercise names, case-insensitive."""
    counts: Counter = Counter()
    for session in sessions:
        for exercise in session.exercises:
            counts[exercise.name.lower()] += 1
    return [{"name": name, "count": count} for name, count in counts.most_common(limit)]


def recent_activity_count(
    sessions: Iterable[WorkoutSession],
    today: Optional[date] = None,
    days: int = DEFAULT_ANALYTICS["recent_days"],
) -> int:
    """Sessions dated within the trailing ``days`` days."""
    cutoff = (today or date.today()) - timedelta(days=days)
    count = 0
    for session in sessions:
        day = parse_date_or_none(session.date)
        if day is not None and day > cutoff:
            count += 1
    return count


def build_overview(
    sessions: Sequence[WorkoutSession],
    today: Optional[date] = None,
    trend_sessions: int = DEFAULT_ANALYTICS["trend_sessions"],
    top_limit: int = DEFAULT_ANALYTICS["top_exercises"],
    recent_days: int = DEFAULT_ANALYTICS["recent_days"],
) -> Dict[str, Any]:
    """Aggregate everything the overview view shows into one payload."""
    top = top_exercises(sessions, limit=top_limit)
    return {
        "total_workouts": len(sessions),
        "total_volume": sum(session_volume(session) for session in sessions),
        "most_frequent": top[0]["name"] if top else None,
        "recent_days": recent_days,
        "recent_count": recent_activity_count(sessions, today=today, days=recent_days),
        "volume_trend": volume_trend(sessions, limit=trend_sessions),
        "top_exercises": top,
    }

"""Formatting helpers for console output."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from voicefit.core.models import Exercise
from voicefit.utils.date_ranges import parse_date_or_none


def format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def format_exercise(exercise: Exercise) -> str:
    """Summarize sets, reps, duration and weight, e.g. ``5 sets x 10 reps @ 60kg``."""
    parts: List[str] = []
    if exercise.sets:
        parts.append(f"{exercise.sets} set" + ("" if exercise.sets == 1 else "s"))
    if exercise.reps:
        if parts:
            parts.append("x")
        parts.append(f"{exercise.reps} reps")
    if exercise.duration_minutes:
        parts.append(f"{format_number(exercise.duration_minutes)} mins")
    if exercise.weight:
        parts.append(f"@ {format_number(exercise.weight)}kg")
    return " ".join(parts)


def format_elapsed(seconds: int) -> str:
    """Format recording time as M:SS."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes}:{secs:02d}"


def format_long_date(value: str) -> str:
    """``2026-10-17`` -> ``Saturday, October 17, 2026``; unparseable dates pass through."""
    parsed = parse_date_or_none(value)
    if parsed is None:
        return value
    return f"{parsed.strftime('%A, %B')} {parsed.day}, {parsed.year}"


def format_created_at(created_at_ms: int) -> str:
    """Local wall-clock time a session was saved, HH:MM."""
    return datetime.fromtimestamp(created_at_ms / 1000).strftime("%H:%M")


def truncate(text: str, max_chars: int) -> str:
    text = " ".join(text.split())
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[: max(max_chars - 3, 0)].rstrip() + "..."


def bar(value: float, maximum: float, width: int = 30) -> str:
    """Horizontal bar for text charts."""
    if maximum <= 0 or value <= 0:
        return ""
    filled = max(1, int(round(width * min(value / maximum, 1.0))))
    return "█" * filled

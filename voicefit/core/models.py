"""Workout data models and their JSON representation.

``from_dict`` on ``Exercise`` and ``DraftSession`` cleans up model output
(trimmed names, positive counts, blank text dropped). Stored sessions are
read back with ``WorkoutSession.from_dict``, which keeps values exactly as
``to_dict`` wrote them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple


def _optional_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _optional_count(value: Any) -> Optional[int]:
    number = _optional_number(value)
    if number is None:
        return None
    count = int(round(number))
    return count if count >= 1 else None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _stored_number(payload: Dict[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    if key in ("sets", "reps") and isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class Exercise:
    """One exercise as spoken by the user."""

    name: str
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight: Optional[float] = None
    duration_minutes: Optional[float] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Exercise":
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("exercise is missing a name")
        return cls(
            name=name.strip(),
            sets=_optional_count(payload.get("sets")),
            reps=_optional_count(payload.get("reps")),
            weight=_optional_number(payload.get("weight")),
            duration_minutes=_optional_number(payload.get("duration_minutes")),
        )

    @classmethod
    def from_record(cls, payload: Dict[str, Any]) -> "Exercise":
        """Read a stored exercise without altering any value."""
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("exercise is missing a name")
        return cls(
            name=name,
            sets=_stored_number(payload, "sets"),
            reps=_stored_number(payload, "reps"),
            weight=_stored_number(payload, "weight"),
            duration_minutes=_stored_number(payload, "duration_minutes"),
        )

    def cleaned(self) -> "Exercise":
        """Same cleanup as model output; raises ValueError for a blank name."""
        return Exercise.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"name": self.name}
        for key in ("sets", "reps", "weight", "duration_minutes"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


def _exercises_from(
    payload: Any,
    reader: Callable[[Dict[str, Any]], Exercise] = Exercise.from_dict,
) -> Tuple[Exercise, ...]:
    if payload is None:
        return ()
    if not isinstance(payload, list):
        raise ValueError("exercises must be a list")
    exercises = []
    for item in payload:
        if not isinstance(item, dict):
            raise ValueError("exercise entries must be objects")
        exercises.append(reader(item))
    return tuple(exercises)


@dataclass(frozen=True)
class DraftSession:
    """Extraction result waiting for the user's confirmation."""

    raw_transcription: str
    exercises: Tuple[Exercise, ...] = ()
    date: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DraftSession":
        transcription = payload.get("raw_transcription")
        if not isinstance(transcription, str):
            raise ValueError("raw_transcription is required")
        return cls(
            raw_transcription=transcription,
            exercises=_exercises_from(payload.get("exercises")),
            date=_optional_text(payload.get("date")),
            notes=_optional_text(payload.get("notes")),
        )


@dataclass(frozen=True)
class NewSession:
    """A confirmed session that has not been assigned an id yet."""

    date: str
    exercises: Tuple[Exercise, ...]
    raw_transcription: str
    notes: Optional[str] = None

    def cleaned(self) -> "NewSession":
        """Normalize before storing; raises ValueError if an exercise has no name."""
        return NewSession(
            date=self.date,
            exercises=tuple(exercise.cleaned() for exercise in self.exercises),
            raw_transcription=self.raw_transcription,
            notes=_optional_text(self.notes),
        )


@dataclass(frozen=True)
class WorkoutSession:
    """A saved workout. Sessions are never updated after saving."""

    id: str
    date: str
    created_at: int
    raw_transcription: str = ""
    exercises: Tuple[Exercise, ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "WorkoutSession":
        session_id = payload.get("id")
        day = payload.get("date")
        created_at = payload.get("createdAt")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("session is missing an id")
        if not isinstance(day, str):
            raise ValueError(f"session {session_id} is missing a date")
        if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
            raise ValueError(f"session {session_id} is missing createdAt")
        transcription = payload.get("raw_transcription")
        if transcription is None:
            transcription = ""
        elif not isinstance(transcription, str):
            raise ValueError(f"session {session_id} has a non-text raw_transcription")
        notes = payload.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValueError(f"session {session_id} has non-text notes")
        return cls(
            id=session_id,
            date=day,
            created_at=int(created_at),
            raw_transcription=transcription,
            exercises=_exercises_from(payload.get("exercises"), Exercise.from_record),
            notes=notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "exercises": [exercise.to_dict() for exercise in self.exercises],
            "raw_transcription": self.raw_transcription,
            "createdAt": self.created_at,
        }
        if self.notes is not None:
            payload["notes"] = self.notes
        return payload

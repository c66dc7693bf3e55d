from __future__ import annotations

import pytest

from voicefit.core.models import DraftSession, Exercise, NewSession, WorkoutSession


def test_exercise_keeps_missing_fields_as_none() -> None:
    exercise = Exercise.from_dict({"name": " Running ", "duration_minutes": 20})
    assert exercise == Exercise(name="Running", duration_minutes=20.0)
    assert exercise.sets is None
    assert exercise.reps is None
    assert exercise.to_dict() == {"name": "Running", "duration_minutes": 20.0}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (5, 5),
        (5.0, 5),
        ("3", 3),
        (0.6, 1),
        (0.4, None),
        (0, None),
        (-2, None),
        (True, None),
        ("lots", None),
        (None, None),
    ],
)
def test_exercise_coerces_counts(raw: object, expected: object) -> None:
    assert Exercise.from_dict({"name": "Squats", "sets": raw}).sets == expected


def test_exercise_requires_name() -> None:
    with pytest.raises(ValueError, match="name"):
        Exercise.from_dict({"sets": 3})
    with pytest.raises(ValueError):
        Exercise.from_dict({"name": "   "})


def test_draft_requires_raw_transcription() -> None:
    with pytest.raises(ValueError, match="raw_transcription"):
        DraftSession.from_dict({"exercises": [{"name": "Squats"}]})


def test_draft_allows_empty_transcription_and_missing_exercises() -> None:
    draft = DraftSession.from_dict({"raw_transcription": "", "date": "  ", "notes": None})
    assert draft == DraftSession(raw_transcription="", exercises=(), date=None, notes=None)


def test_draft_rejects_non_list_exercises() -> None:
    with pytest.raises(ValueError, match="list"):
        DraftSession.from_dict({"raw_transcription": "x", "exercises": {"name": "Squats"}})


def test_session_dict_uses_persisted_field_names() -> None:
    session = WorkoutSession(
        id="abc",
        date="2026-10-17",
        created_at=1760000000000,
        raw_transcription="five sets of ten bench press",
        exercises=(Exercise(name="Bench Press", sets=5, reps=10),),
        notes="felt strong",
    )
    payload = session.to_dict()
    assert payload == {
        "id": "abc",
        "date": "2026-10-17",
        "exercises": [{"name": "Bench Press", "sets": 5, "reps": 10}],
        "raw_transcription": "five sets of ten bench press",
        "createdAt": 1760000000000,
        "notes": "felt strong",
    }
    assert WorkoutSession.from_dict(payload) == session


def test_session_without_exercises_loads_with_empty_tuple() -> None:
    session = WorkoutSession.from_dict({"id": "a", "date": "2026-10-17", "createdAt": 1})
    assert session.exercises == ()
    assert session.raw_transcription == ""


@pytest.mark.parametrize(
    "payload",
    [
        {"date": "2026-10-17", "createdAt": 1},
        {"id": "a", "createdAt": 1},
        {"id": "a", "date": "2026-10-17"},
        {"id": "a", "date": "2026-10-17", "createdAt": "yesterday"},
    ],
)
def test_session_missing_required_fields_raise(payload: dict) -> None:
    with pytest.raises(ValueError):
        WorkoutSession.from_dict(payload)


def test_session_keeps_stored_values_exactly() -> None:
    payload = {
        "id": "legacy",
        "date": "2026-09-01",
        "exercises": [{"name": " Squats ", "sets": 0, "reps": 10.0, "weight": 60}],
        "raw_transcription": "  padded  ",
        "createdAt": 1756700000000,
        "notes": "",
    }
    session = WorkoutSession.from_dict(payload)
    assert session.exercises == (Exercise(name=" Squats ", sets=0, reps=10, weight=60),)
    assert session.notes == ""
    assert session.raw_transcription == "  padded  "
    assert WorkoutSession.from_dict(session.to_dict()) == session


@pytest.mark.parametrize(
    "exercise",
    [{"name": ""}, {"name": "Squats", "sets": "five"}, {"name": "Squats", "weight": True}],
)
def test_session_rejects_unreadable_exercises(exercise: dict) -> None:
    with pytest.raises(ValueError):
        WorkoutSession.from_dict({"id": "a", "date": "2026-10-17", "createdAt": 1, "exercises": [exercise]})


def test_new_session_cleaned() -> None:
    session = NewSession(
        date="2026-10-17",
        exercises=(Exercise(name=" Plank ", sets=0, duration_minutes=2.0),),
        raw_transcription="plank",
        notes="   ",
    )
    assert session.cleaned() == NewSession(
        date="2026-10-17",
        exercises=(Exercise(name="Plank", duration_minutes=2.0),),
        raw_transcription="plank",
    )
    with pytest.raises(ValueError, match="name"):
        NewSession(date="2026-10-17", exercises=(Exercise(name=""),), raw_transcription="").cleaned()

from __future__ import annotations

import pytest

from voicefit.core.models import Exercise
from voicefit.utils.formatting import bar, format_elapsed, format_exercise, format_long_date, format_number, truncate


@pytest.mark.parametrize(
    ("exercise", "expected"),
    [
        (Exercise(name="Bench Press", sets=5, reps=10, weight=60.0), "5 sets x 10 reps @ 60kg"),
        (Exercise(name="Deadlift", sets=1, reps=5, weight=102.5), "1 set x 5 reps @ 102.5kg"),
        (Exercise(name="Pull Ups", reps=8), "8 reps"),
        (Exercise(name="Running", duration_minutes=20.0), "20 mins"),
        (Exercise(name="Stretching"), ""),
    ],
)
def test_format_exercise(exercise: Exercise, expected: str) -> None:
    assert format_exercise(exercise) == expected


def test_format_number() -> None:
    assert format_number(None) == ""
    assert format_number(60.0) == "60"
    assert format_number(12.5) == "12.5"


def test_format_elapsed() -> None:
    assert format_elapsed(0) == "0:00"
    assert format_elapsed(75) == "1:15"
    assert format_elapsed(-3) == "0:00"


def test_format_long_date() -> None:
    assert format_long_date("2026-10-17") == "Saturday, October 17, 2026"
    assert format_long_date("someday") == "someday"


def test_truncate() -> None:
    assert truncate("short  text\n", 120) == "short text"
    assert truncate("a" * 20, 10) == "aaaaaaa..."
    assert truncate("a" * 20, 0) == "a" * 20


def test_bar() -> None:
    assert bar(10, 10, width=5) == "█████"
    assert bar(1, 100, width=5) == "█"
    assert bar(0, 10) == ""
    assert bar(5, 0) == ""

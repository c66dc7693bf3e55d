from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from voicefit.core.models import DraftSession, Exercise, NewSession, WorkoutSession
from voicefit.core.store import SessionStore


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def sessions_file(tmp_path: Path) -> Path:
    return tmp_path / "data" / "sessions.json"


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, sessions_file: Path) -> Path:
    """Point config and storage at tmp_path so CLI tests never touch $HOME."""
    monkeypatch.setenv("VOICEFIT_CONFIG_FILE", str(tmp_path / "missing-config.toml"))
    monkeypatch.setenv("VOICEFIT_SESSIONS_FILE", str(sessions_file))
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return sessions_file


@pytest.fixture()
def make_session() -> Callable[..., WorkoutSession]:
    counter = {"n": 0}

    def _make(
        day: str = "2026-10-15",
        exercises: Optional[List[Dict[str, Any]]] = None,
        created_at: Optional[int] = None,
        session_id: Optional[str] = None,
        transcription: str = "did some work",
        notes: Optional[str] = None,
    ) -> WorkoutSession:
        counter["n"] += 1
        return WorkoutSession(
            id=session_id or f"s{counter['n']:03d}",
            date=day,
            created_at=created_at if created_at is not None else 1_700_000_000_000 + counter["n"],
            raw_transcription=transcription,
            exercises=tuple(Exercise.from_dict(item) for item in (exercises or [])),
            notes=notes,
        )

    return _make


@pytest.fixture()
def bench_draft() -> DraftSession:
    return DraftSession(
        raw_transcription="Hoy hice cinco series de diez press de banca.",
        exercises=(Exercise(name="Bench Press", sets=5, reps=10),),
    )


@pytest.fixture()
def new_session() -> NewSession:
    return NewSession(
        date="2026-10-16",
        exercises=(Exercise(name="Squats", sets=3, reps=10, weight=60.0),),
        raw_transcription="three sets of ten squats at sixty kilos",
    )


@pytest.fixture()
def store(sessions_file: Path) -> SessionStore:
    return SessionStore.open(sessions_file)


@pytest.fixture()
def write_sessions_file(sessions_file: Path):
    def _write(payload: Any) -> Path:
        sessions_file.parent.mkdir(parents=True, exist_ok=True)
        text = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
        sessions_file.write_text(text)
        return sessions_file

    return _write


@pytest.fixture()
def gemini_reply() -> Callable[[Any], Dict[str, Any]]:
    """Wrap an extraction payload the way generateContent returns it."""

    def _reply(payload: Any) -> Dict[str, Any]:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}

    return _reply

"""Shared command helpers."""

from __future__ import annotations

import json
from typing import Any

import typer

from voicefit.core.config import resolve_api_key
from voicefit.core.gateway import InferenceGateway
from voicefit.core.state import CLIState
from voicefit.core.store import SessionStore


def get_state(ctx: typer.Context) -> CLIState:
    """Extract validated CLI state from Typer context."""
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=2)
    return state


def open_store(state: CLIState) -> SessionStore:
    """Load the session store configured for this invocation."""
    return SessionStore.open(state.sessions_file)


def build_gateway(state: CLIState) -> InferenceGateway:
    gateway_cfg = state.config.get("gateway", {})
    return InferenceGateway(
        api_key=resolve_api_key(state.config),
        model=str(gateway_cfg.get("model")),
        base_url=str(gateway_cfg.get("base_url")),
        timeout_seconds=float(gateway_cfg.get("timeout_seconds", 60)),
    )


def build_capture(state: CLIState) -> Any:
    """Create the microphone capture; imported lazily so PortAudio is only needed to record."""
    from voicefit.core.capture import AudioCapture

    recording_cfg = state.config.get("recording", {})
    return AudioCapture(
        sample_rate=int(recording_cfg.get("sample_rate", 16000)),
        channels=int(recording_cfg.get("channels", 1)),
        device=recording_cfg.get("device"),
    )


def print_json_payload(state: CLIState, payload: Any) -> None:
    """Print JSON payload with plain-mode fallback for piping."""
    if state.plain_output:
        typer.echo(json.dumps(payload, separators=(",", ":"), ensure_ascii=False))
        return
    state.console.print_json(data=payload)


def report_write_error(state: CLIState, store: SessionStore) -> None:
    """Warn (without failing) when the last store mutation was not written."""
    if store.write_error is None:
        return
    if state.plain_output or state.json_output:
        typer.echo(f"warning: {store.write_error}", err=True)
        return
    state.console.print(f"[yellow]Warning:[/yellow] {store.write_error}")

"""Record, review and save a spoken workout."""

from __future__ import annotations

import sys
from contextlib import nullcontext
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer
from rich.live import Live
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from voicefit.commands.common import (
    build_capture,
    build_gateway,
    get_state,
    open_store,
    print_json_payload,
    report_write_error,
)
from voicefit.core.constants import AUDIO_MIME_TYPES, DEFAULT_MIME_TYPE, MICROPHONE_ERROR_MESSAGE
from voicefit.core.models import DraftSession
from voicefit.core.state import CLIState
from voicefit.core.workflow import Failed, RecordingWorkflow, Saved
from voicefit.utils.formatting import bar, format_elapsed, format_exercise


def guess_mime_type(path: Path) -> str:
    return AUDIO_MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


class RecordingView:
    """Live elapsed time and input level; re-rendered on every refresh."""

    def __init__(self, workflow: RecordingWorkflow, width: int = 24) -> None:
        self.workflow = workflow
        self.width = width

    def __rich__(self) -> Text:
        meter = bar(self.workflow.level, 1.0, width=self.width).ljust(self.width)
        return Text.assemble(
            ("● ", "bold red"),
            (format_elapsed(self.workflow.elapsed_seconds), "bold red"),
            "  ",
            (meter, "cyan"),
            "\nListening... describe your exercises, sets, reps and weights. Press Enter to stop.",
        )


def _status(state: CLIState, message: str) -> Any:
    if state.plain_output or state.json_output:
        return nullcontext()
    return state.console.status(message)


def _record_from_microphone(state: CLIState, workflow: RecordingWorkflow) -> None:
    workflow.start()
    if isinstance(workflow.state, Failed):
        return

    if state.plain_output or state.json_output:
        typer.echo("Recording... press Enter to stop.", err=True)
        sys.stdin.readline()
    else:
        refresh = int(state.config.get("recording", {}).get("refresh_per_second", 30))
        with Live(
            RecordingView(workflow),
            console=state.console,
            refresh_per_second=refresh,
            transient=True,
        ):
            sys.stdin.readline()

    with _status(state, "Analyzing workout... extracting exercises, sets and reps"):
        workflow.stop()


def _draft_payload(draft: DraftSession) -> Dict[str, Any]:
    return {
        "date": draft.date,
        "exercises": [exercise.to_dict() for exercise in draft.exercises],
        "notes": draft.notes,
        "raw_transcription": draft.raw_transcription,
    }


def _print_review(state: CLIState, draft: DraftSession) -> None:
    if state.plain_output:
        typer.echo(f"date\t{draft.date or 'today'}")
        for exercise in draft.exercises:
            typer.echo(f"exercise\t{exercise.name}\t{format_exercise(exercise)}")
        typer.echo(f"transcription\t{draft.raw_transcription}")
        if draft.notes:
            typer.echo(f"notes\t{draft.notes}")
        return

    table = Table(title=f"Workout Extracted ({draft.date or 'today'})")
    table.add_column("Exercise")
    table.add_column("Detail", justify="right")
    for exercise in draft.exercises:
        table.add_row(escape(exercise.name), format_exercise(exercise))
    state.console.print(table)
    state.console.print(f'[italic]"{escape(draft.raw_transcription)}"[/italic]')
    if draft.notes:
        state.console.print(f"[bold]Note:[/bold] {escape(draft.notes)}")


def record_command(
    ctx: typer.Context,
    audio_file: Optional[Path] = typer.Option(
        None,
        "--audio-file",
        help="Process an existing recording instead of the microphone",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Save without asking"),
    discard: bool = typer.Option(False, "--discard", help="Show the extraction but do not save it"),
) -> None:
    """Record a workout description and save the extracted session."""
    state = get_state(ctx)
    if yes and discard:
        raise typer.BadParameter("--yes and --discard are mutually exclusive")

    store = open_store(state)
    gateway = build_gateway(state)

    capture = None
    if audio_file is None:
        try:
            capture = build_capture(state)
        except OSError as exc:
            # sounddevice raises OSError when the PortAudio library is missing.
            _fail(state, f"{MICROPHONE_ERROR_MESSAGE} ({exc})")

    def _show_history_hint() -> None:
        if not (state.json_output or state.plain_output):
            state.console.print("Saved. See it with: voicefit history")

    workflow = RecordingWorkflow(capture, gateway, store, on_show_history=_show_history_hint)
    try:
        while True:
            if audio_file is not None:
                with _status(state, "Analyzing workout... extracting exercises, sets and reps"):
                    workflow.submit(audio_file.read_bytes(), guess_mime_type(audio_file))
            else:
                _record_from_microphone(state, workflow)

            if isinstance(workflow.state, Failed):
                message = workflow.state.message
                workflow.retry()
                if state.json_output or state.plain_output or yes:
                    _fail(state, message)
                state.console.print(f"[red]Something went wrong:[/red] {message}")
                if typer.confirm("Try again?", default=True, err=True):
                    continue
                raise typer.Exit(code=1)
            break

        draft = workflow.draft
        if draft is None:
            _fail(state, "No workout was extracted")

        if not state.json_output:
            _print_review(state, draft)

        should_save = yes or (not discard and typer.confirm("Save workout?", default=True, err=True))
        if not should_save:
            workflow.discard()
            if state.json_output:
                print_json_payload(state, {"status": "discarded", "draft": _draft_payload(draft)})
            elif state.plain_output:
                typer.echo("status\tdiscarded")
            else:
                state.console.print("Discarded.")
            return

        workflow.save()
        report_write_error(state, store)
        saved = workflow.state.session if isinstance(workflow.state, Saved) else None

        if state.json_output:
            print_json_payload(
                state,
                {"status": "saved", "session": saved.to_dict() if saved else None},
            )
        elif state.plain_output:
            typer.echo("status\tsaved")
            if saved:
                typer.echo(f"id\t{saved.id}")
                typer.echo(f"date\t{saved.date}")
    finally:
        workflow.teardown()


def _fail(state: CLIState, message: str) -> NoReturn:
    if state.json_output:
        print_json_payload(state, {"status": "error", "message": message})
    elif state.plain_output:
        typer.echo("status\terror")
        typer.echo(f"message\t{message}")
    else:
        state.console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(code=1)

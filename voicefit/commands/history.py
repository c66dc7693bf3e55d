"""Workout history and delete commands."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import typer
from rich.markup import escape
from rich.table import Table

from voicefit.commands.common import get_state, open_store, print_json_payload, report_write_error
from voicefit.core.models import WorkoutSession
from voicefit.utils.date_ranges import validate_date
from voicefit.utils.formatting import (
    format_created_at,
    format_exercise,
    format_long_date,
    truncate,
)


def sort_for_history(sessions: List[WorkoutSession]) -> List[WorkoutSession]:
    """Newest date first; sessions from the same day newest-saved first."""
    return sorted(sessions, key=lambda session: (session.date, session.created_at), reverse=True)


def filter_by_date(
    sessions: List[WorkoutSession],
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> List[WorkoutSession]:
    # YYYY-MM-DD strings compare in calendar order.
    return [
        session
        for session in sessions
        if (start_date is None or session.date >= start_date)
        and (end_date is None or session.date <= end_date)
    ]


def history_command(
    ctx: typer.Context,
    full: bool = typer.Option(False, "--full", help="Show complete transcriptions"),
    limit: Optional[int] = typer.Option(None, help="Show at most N sessions"),
    start_date: Optional[str] = typer.Option(None, help="Start date (YYYY-MM-DD)", callback=validate_date),
    end_date: Optional[str] = typer.Option(None, help="End date (YYYY-MM-DD)", callback=validate_date),
) -> None:
    """List saved workouts, newest first."""
    state = get_state(ctx)
    store = open_store(state)

    sessions = sort_for_history(filter_by_date(store.list(), start_date, end_date))
    if limit is not None:
        sessions = sessions[: max(limit, 0)]

    if state.json_output:
        print_json_payload(state, {"sessions": [session.to_dict() for session in sessions]})
        return

    transcript_chars = 0 if full else int(state.config.get("history", {}).get("transcript_chars", 120))

    if state.plain_output:
        typer.echo("id\tdate\ttime\texercise\tdetail")
        for session in sessions:
            for exercise in session.exercises:
                typer.echo(
                    "\t".join(
                        [
                            session.id,
                            session.date,
                            format_created_at(session.created_at),
                            exercise.name,
                            format_exercise(exercise),
                        ]
                    )
                )
        typer.echo(f"total\t{len(sessions)}")
        return

    if not sessions:
        state.console.print("No workouts recorded yet.")
        return

    state.console.print("[bold]Workout History[/bold]")
    for session in sessions:
        table = Table(
            title=f"{format_long_date(session.date)}  ·  {format_created_at(session.created_at)}",
            title_justify="left",
            caption=f"id {session.id[:8]}",
            caption_justify="left",
            show_header=False,
        )
        table.add_column("Exercise")
        table.add_column("Detail", justify="right")
        for exercise in session.exercises:
            table.add_row(escape(exercise.name), format_exercise(exercise))
        state.console.print(table)
        if session.raw_transcription:
            state.console.print(f'  [italic]"{escape(truncate(session.raw_transcription, transcript_chars))}"[/italic]')
        if session.notes:
            state.console.print(f"  Note: {escape(session.notes)}")


def delete_command(
    ctx: typer.Context,
    session_id: str = typer.Argument(..., help="Session ID (or a unique prefix)"),
    force: bool = typer.Option(False, "--force", help="Skip confirmation prompt"),
) -> None:
    """Delete a saved workout."""
    state = get_state(ctx)
    store = open_store(state)

    session = store.find_prefix(session_id)
    if session is None:
        payload: Dict[str, Any] = {"status": "not_found", "id": session_id}
        if state.json_output:
            print_json_payload(state, payload)
        elif state.plain_output:
            typer.echo("status\tnot_found")
            typer.echo(f"id\t{session_id}")
        else:
            state.console.print(f"No workout matches {escape(session_id)}")
        return

    if not force:
        confirmed = typer.confirm(f"Delete workout from {session.date} ({session.id[:8]})?", default=False)
        if not confirmed:
            raise typer.Exit(code=0)

    store.delete(session.id)
    report_write_error(state, store)

    payload = {"status": "deleted", "id": session.id}
    if state.json_output:
        print_json_payload(state, payload)
        return

    if state.plain_output:
        typer.echo("status\tdeleted")
        typer.echo(f"id\t{session.id}")
        return

    state.console.print(f"Deleted workout {session.id[:8]} ({session.date})")

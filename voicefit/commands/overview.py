"""Overview (analytics) command."""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.table import Table

from voicefit.commands.common import get_state, open_store, print_json_payload
from voicefit.core.analytics import build_overview
from voicefit.utils.formatting import bar


def overview_command(ctx: typer.Context) -> None:
    """Show recent volume, frequent exercises and weekly activity."""
    state = get_state(ctx)
    store = open_store(state)
    sessions = store.list()

    analytics_cfg = state.config.get("analytics", {})
    report = build_overview(
        sessions,
        trend_sessions=int(analytics_cfg.get("trend_sessions", 7)),
        top_limit=int(analytics_cfg.get("top_exercises", 5)),
        recent_days=int(analytics_cfg.get("recent_days", 7)),
    )

    if state.json_output:
        print_json_payload(state, report)
        return

    if state.plain_output:
        typer.echo(f"recent_sessions\t{report['recent_count']}")
        typer.echo(f"total_workouts\t{report['total_workouts']}")
        typer.echo(f"total_volume\t{report['total_volume']}")
        for row in report["volume_trend"]:
            typer.echo(f"volume\t{row['date']}\t{row['volume']}")
        for row in report["top_exercises"]:
            typer.echo(f"exercise\t{row['name']}\t{row['count']}")
        return

    if not sessions:
        state.console.print("[bold]No Data Yet[/bold]")
        state.console.print("Record your first workout to see analytics: voicefit record")
        return

    state.console.print("[bold]Overview[/bold]")
    state.console.print(
        f"Last {report['recent_days']} days: [bold]{report['recent_count']}[/bold] sessions    "
        f"Total logged: [bold]{report['total_workouts']}[/bold] workouts"
    )

    trend = Table(title="Volume Trend (Total Reps)")
    trend.add_column("Date")
    trend.add_column("Volume", justify="right")
    trend.add_column("")
    peak = max((row["volume"] for row in report["volume_trend"]), default=0)
    for row in report["volume_trend"]:
        trend.add_row(row["label"], str(row["volume"]), f"[blue]{bar(row['volume'], peak)}[/blue]")
    state.console.print(trend)

    top = Table(title="Frequent Exercises")
    top.add_column("Exercise")
    top.add_column("Count", justify="right")
    top.add_column("")
    most = max((row["count"] for row in report["top_exercises"]), default=0)
    for row in report["top_exercises"]:
        top.add_row(escape(row["name"]), str(row["count"]), f"[green]{bar(row['count'], most)}[/green]")
    state.console.print(top)

"""Date parsing and validation helpers."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

import typer

from voicefit.core.constants import DATE_FORMAT

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(value: Optional[str]) -> Optional[str]:
    """Typer callback that validates YYYY-MM-DD format for date options."""
    if value is None:
        return value
    if parse_date_or_none(value) is None:
        raise typer.BadParameter(
            f"Invalid date '{value}'. Expected format: YYYY-MM-DD (e.g. 2026-01-15)"
        )
    return value


def parse_date(value: str) -> date:
    """Parse YYYY-MM-DD date string."""
    return datetime.strptime(value, DATE_FORMAT).date()


def parse_date_or_none(value: Optional[str]) -> Optional[date]:
    if not value or not _DATE_RE.match(value):
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


def resolve_session_date(value: Optional[str], today: date) -> str:
    """Date a saved session gets: the spoken date if valid, otherwise today."""
    parsed = parse_date_or_none(value.strip() if value else None)
    return (parsed or today).strftime(DATE_FORMAT)

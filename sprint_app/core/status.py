"""Issue status labels and tracked-status timing helpers."""

from __future__ import annotations

from datetime import datetime

from .config import STATUS_LABELS, TRACKED_STATUS_COLUMNS
from .timeutil import format_timestamp


def parse_status_code(value) -> int:
    """Coerce a raw ``field_issue_status`` value to an int (0 when unusable)."""
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def status_label(code: int) -> str:
    """Map a status code to its label.

    Examples
    --------
    >>> status_label(8)
    'Needs review'
    >>> status_label(99)
    'Unknown (99)'
    """
    return STATUS_LABELS.get(code, f"Unknown ({code})")


def tracked_status_times(code: int, last_status_change: datetime | None) -> dict[str, str]:
    """Return the four ``last_time_in_*`` columns for an issue.

    The API only exposes the most recent status transition, so at most the
    column matching the current status is populated; the others stay empty.
    """
    times = {column: "" for column in TRACKED_STATUS_COLUMNS.values()}
    column = TRACKED_STATUS_COLUMNS.get(code)
    if column and last_status_change is not None:
        times[column] = format_timestamp(last_status_change)
    return times

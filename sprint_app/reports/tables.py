"""Report assembly: issue records to the three output tables and CSV files."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from sprint_app.core.config import (
    ASSIGNMENT_COLUMNS,
    CONTRIBUTOR_COLUMNS,
    CONTRIBUTOR_SEPARATOR,
    FILE_PREFIXES,
    FILE_STAMP_FORMAT,
    ISSUE_COLUMNS,
)
from sprint_app.core.models import IssueRecord
from sprint_app.core.status import status_label, tracked_status_times
from sprint_app.core.timeutil import format_timestamp

logger = logging.getLogger(__name__)


def _base_columns(record: IssueRecord) -> dict[str, Any]:
    issue = record.issue
    return {
        "nid": issue.nid,
        "title": issue.title,
        "link": issue.url,
        "project_name": record.project_name,
    }


def issue_row(record: IssueRecord) -> dict[str, Any]:
    issue = record.issue
    row = _base_columns(record)
    row["component"] = issue.component
    row["current_status"] = status_label(issue.status_code)
    row.update(tracked_status_times(issue.status_code, issue.last_status_change))
    row["created"] = format_timestamp(issue.created)
    row["changed"] = format_timestamp(issue.changed)
    return row


def contributor_row(record: IssueRecord) -> dict[str, Any]:
    row = _base_columns(record)
    row["contributors"] = CONTRIBUTOR_SEPARATOR.join(record.contributors)
    return row


def assignment_rows(record: IssueRecord) -> list[dict[str, Any]]:
    rows = []
    for event in record.assignments:
        row = _base_columns(record)
        row.update(
            {
                "contributor": event.contributor,
                "type": event.type,
                "commenter": event.commenter,
                "date": format_timestamp(event.instant),
                "status": event.status,
            }
        )
        rows.append(row)
    return rows


def _frame(rows: list[dict[str, Any]], columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=list(columns))


def build_tables(records: Iterable[IssueRecord], *, include_assignments: bool = True) -> dict[str, pd.DataFrame]:
    """Assemble the report tables; row order follows record (fetch) order."""
    issues: list[dict[str, Any]] = []
    contributors: list[dict[str, Any]] = []
    assignments: list[dict[str, Any]] = []
    for record in records:
        issues.append(issue_row(record))
        contributors.append(contributor_row(record))
        if include_assignments:
            assignments.extend(assignment_rows(record))
    tables = {
        "issues": _frame(issues, ISSUE_COLUMNS),
        "contributors": _frame(contributors, CONTRIBUTOR_COLUMNS),
    }
    if include_assignments:
        tables["assignments"] = _frame(assignments, ASSIGNMENT_COLUMNS)
    return tables


def report_paths(output_dir: str | Path, generated_at: datetime, names: Iterable[str]) -> dict[str, Path]:
    stamp = generated_at.strftime(FILE_STAMP_FORMAT)
    base = Path(output_dir)
    return {name: base / f"{FILE_PREFIXES[name]}_{stamp}.csv" for name in names}


def write_tables(
    tables: dict[str, pd.DataFrame],
    output_dir: str | Path,
    generated_at: datetime,
    *,
    encoding: str = "utf-8",
) -> dict[str, Path]:
    """Write each table as CSV under ``output_dir`` (created if absent)."""
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    paths = report_paths(output_dir, generated_at, tables.keys())
    for name, df in tables.items():
        df.to_csv(paths[name], index=False, encoding=encoding)
        logger.info("Wrote %s rows to %s", len(df), paths[name])
    return paths

"""SprintReportService: orchestrates fetching, filtering, scraping, and report assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytz

from sprint_app.reports.tables import build_tables, write_tables

from . import observer as events
from .changelog import PageRenderer, collect_assignment_events
from .collector import collect_contributors, collect_issues
from .config import TIMEZONE
from .context import RunContext
from .drupal_client import DrupalAPI
from .errors import FetchError
from .mappers import map_issue
from .models import IssueRecord
from .observer import Observer, emit
from .status import status_label
from .timeutil import SprintWindow

logger = logging.getLogger(__name__)


@dataclass
class SprintReport:
    window: SprintWindow
    tag_id: int | str
    records: list[IssueRecord] = field(default_factory=list)
    tables: dict[str, pd.DataFrame] = field(default_factory=dict)
    errors: list[FetchError] = field(default_factory=list)
    stopped_early: bool = False

    @property
    def empty(self) -> bool:
        return not self.records


class SprintReportService:
    def __init__(
        self,
        api: DrupalAPI,
        renderer: PageRenderer | None = None,
        *,
        context: RunContext | None = None,
        observer: Observer | None = None,
        timezone: str = TIMEZONE,
    ):
        self.api = api
        self.renderer = renderer
        self.context = context or RunContext()
        self.observer = observer
        self._tz = pytz.timezone(timezone)

    # ------------------ Pipeline ------------------
    def collect(
        self,
        window: SprintWindow,
        tag_id: int | str,
        *,
        include_assignments: bool = True,
    ) -> SprintReport:
        """Fetch issues for the tag and derive contributors and assignment events.

        Fetch failures never abort the run as a whole: each one ends only the
        pagination loop it happened in and is recorded on ``report.errors``.
        """
        if include_assignments and self.renderer is None:
            raise ValueError("A page renderer is required when assignments are included")
        report = SprintReport(window=window, tag_id=tag_id)
        logger.info("Sprint window: %s; tag id: %s", window.describe(), tag_id)

        collected = collect_issues(self.api, window, tag_id, observer=self.observer, tz=self._tz)
        report.stopped_early = collected.stopped_early
        if collected.error is not None:
            report.errors.append(collected.error)

        total = len(collected.items)
        for idx, raw in enumerate(collected.items, start=1):
            issue = map_issue(raw, self._tz)
            emit(
                self.observer,
                events.ISSUE_START,
                f"Processing issue #{issue.nid}: {issue.title}",
                current=idx,
                total=total,
                details={"nid": issue.nid},
            )
            record = self._build_record(issue, window, include_assignments, report)
            report.records.append(record)
            emit(
                self.observer,
                events.ISSUE_DONE,
                f"Project: {record.project_name}, Status: {status_label(issue.status_code)}, "
                f"Contributors: {len(record.contributors)}, Assignment events: {len(record.assignments)}",
                current=idx,
                total=total,
                details={
                    "nid": issue.nid,
                    "contributors": len(record.contributors),
                    "assignments": len(record.assignments),
                },
            )

        report.tables = build_tables(report.records, include_assignments=include_assignments)
        return report

    def _build_record(
        self,
        issue,
        window: SprintWindow,
        include_assignments: bool,
        report: SprintReport,
    ) -> IssueRecord:
        record = IssueRecord(issue=issue)
        if issue.project_uri:
            record.project_name = self.api.fetch_project_name(issue.project_uri, self.context) or ""

        contributors = collect_contributors(
            self.api, issue.nid, window, observer=self.observer, tz=self._tz
        )
        if contributors.error is not None:
            report.errors.append(contributors.error)
        names = list(contributors.names)
        if issue.author_id:
            author = self.api.fetch_username(issue.author_id)
            if author and author not in names:
                names.append(author)
        record.contributors = names

        if include_assignments and issue.url:
            assignments = collect_assignment_events(
                self.renderer, issue.url, window, observer=self.observer, tz=self._tz
            )
            if assignments.error is not None:
                report.errors.append(assignments.error)
            record.assignments = assignments.events
        return record

    # ------------------ Output ------------------
    def write(
        self,
        report: SprintReport,
        output_dir: str | Path,
        *,
        generated_at: datetime | None = None,
        encoding: str = "utf-8",
    ) -> dict[str, Path]:
        generated_at = generated_at or datetime.now(self._tz)
        paths = write_tables(report.tables, output_dir, generated_at, encoding=encoding)
        for name, path in paths.items():
            emit(
                self.observer,
                events.REPORT_WRITTEN,
                f"{name.capitalize()} CSV: {path}",
                details={"table": name, "path": path, "rows": len(report.tables[name])},
            )
        return paths

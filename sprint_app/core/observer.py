"""Structured progress events emitted by the collection pipeline.

Core fetch/filter/extract code never prints; it hands ``ProgressEvent``
instances to an injectable observer. The CLI logs them, the Streamlit page
renders them as a progress bar, and tests collect them in a list.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

ISSUES_PAGE = "issues.page"
ISSUES_CUTOFF = "issues.cutoff"
ISSUES_DONE = "issues.done"
ISSUE_START = "issue.start"
ISSUE_DONE = "issue.done"
COMMENTS_PAGE = "comments.page"
ASSIGNMENTS_PAGE = "assignments.page"
FETCH_ERROR = "fetch.error"
REPORT_WRITTEN = "report.written"


@dataclass(slots=True)
class ProgressEvent:
    kind: str
    message: str
    current: int | None = None
    total: int | None = None
    details: dict[str, Any] = field(default_factory=dict)


Observer = Callable[[ProgressEvent], None]


def emit(observer: Observer | None, kind: str, message: str, **kwargs: Any) -> None:
    if observer is None:
        return
    observer(ProgressEvent(kind=kind, message=message, **kwargs))


class LoggingObserver:
    """Render progress events as log lines."""

    def __init__(self, log: logging.Logger | None = None):
        self._log = log or logger

    def __call__(self, event: ProgressEvent) -> None:
        level = logging.WARNING if event.kind == FETCH_ERROR else logging.INFO
        if event.current is not None and event.total:
            self._log.log(level, "[%s/%s] %s", event.current, event.total, event.message)
        else:
            self._log.log(level, "%s", event.message)

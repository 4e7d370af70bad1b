"""Streamlit rendering of pipeline ProgressEvents (banner, bar, and fetch warnings)."""

from __future__ import annotations

import streamlit as st

from sprint_app.core import observer as events
from sprint_app.core.observer import ProgressEvent

# Per-issue events carry current/total; page-level events only update the text.
_COUNTED_KINDS = {events.ISSUE_START, events.ISSUE_DONE}


class ProgressReporter:
    """Observer that renders an info banner, status line, and progress bar in Streamlit."""

    def __init__(self, title: str):
        self._container = st.container()
        self._title_placeholder = self._container.info(title)
        self._message_placeholder = self._container.empty()
        self._progress_placeholder = self._container.progress(0.0)
        self._total: int | None = None
        self._current: int = 0
        self._finalized: bool = False
        self.warnings: list[str] = []

    def __call__(self, event: ProgressEvent) -> None:
        if event.kind == events.FETCH_ERROR:
            self.warnings.append(event.message)
        if event.kind in _COUNTED_KINDS:
            self.update(event.message, current=event.current, total=event.total)
        else:
            self.update(event.message)

    def update(self, message: str, *, current: int | None = None, total: int | None = None) -> None:
        if self._finalized:
            return
        if total:
            self._total = total
        if current is not None:
            self._current = max(0, current)
        suffix = f" ({len(self.warnings)} fetch warning(s))" if self.warnings else ""
        self._message_placeholder.write(message + suffix)
        self._refresh_progress()

    def complete(self, message: str) -> None:
        if self._finalized:
            return
        self._progress_placeholder.progress(1.0)
        self._container.success(message)
        if self.warnings:
            with self._container.expander(f"Fetch warnings ({len(self.warnings)})"):
                for warning in self.warnings:
                    st.warning(warning)
        self._finalized = True

    def error(self, message: str) -> None:
        if self._finalized:
            return
        self._container.error(message)
        self._finalized = True

    def _refresh_progress(self) -> None:
        if not self._total:
            # Issue count not known until the issue listing finishes
            self._progress_placeholder.progress(0.0)
            return
        self._progress_placeholder.progress(min(self._current / self._total, 1.0))

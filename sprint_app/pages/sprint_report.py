"""Sprint report page: run the collector interactively and download the tables."""

from __future__ import annotations

from contextlib import ExitStack
from datetime import date, datetime

import pandas as pd
import pytz
import streamlit as st

from sprint_app.app import register_page
from sprint_app.core.config import FILE_PREFIXES, FILE_STAMP_FORMAT, AppSettings, load_settings
from sprint_app.core.drupal_client import DrupalAPI
from sprint_app.core.errors import SprintReportError
from sprint_app.core.renderer import PlaywrightRenderer
from sprint_app.core.service import SprintReport, SprintReportService
from sprint_app.core.timeutil import SprintWindow
from sprint_app.visual.progress import ProgressReporter

SETTINGS_FILE = "settings.yaml"

TABLE_TITLES = {
    "issues": "Issue status",
    "contributors": "Contributors",
    "assignments": "Assignment events",
}


def render_report_tables(tables: dict[str, pd.DataFrame], *, encoding: str = "utf-8", stamp: str = "") -> None:
    """Show each report table with a CSV download button."""
    for name, df in tables.items():
        st.subheader(f"{TABLE_TITLES.get(name, name)} ({len(df)})")
        if df.empty:
            st.caption("No rows.")
        else:
            st.dataframe(df, hide_index=True)
        suffix = f"_{stamp}" if stamp else ""
        st.download_button(
            f"Download {name} CSV",
            data=df.to_csv(index=False).encode(encoding),
            file_name=f"{FILE_PREFIXES.get(name, name)}{suffix}.csv",
            mime="text/csv",
            key=f"download_{name}",
        )


def run_report(
    start: date,
    end: date | None,
    tag_id: int,
    *,
    include_assignments: bool,
    progress: ProgressReporter,
    settings: AppSettings,
) -> SprintReport:
    window = SprintWindow.from_strings(
        start.strftime("%Y-%m-%d"),
        end.strftime("%Y-%m-%d") if end else None,
        settings.timezone,
    )
    api = DrupalAPI(
        settings.api_base_url,
        delay_seconds=settings.api_delay_seconds,
        page_limit=settings.api_page_limit,
        timeout=settings.request_timeout_seconds,
        user_agent=settings.user_agent,
    )
    with ExitStack() as stack:
        renderer = None
        if include_assignments:
            renderer = stack.enter_context(
                PlaywrightRenderer(
                    headless=settings.headless,
                    timeout_ms=settings.render_timeout_ms,
                    user_agent=settings.user_agent,
                )
            )
        service = SprintReportService(api, renderer, observer=progress, timezone=settings.timezone)
        return service.collect(window, tag_id, include_assignments=include_assignments)


@register_page("Sprint Report")
def sprint_report_page():
    st.title("Sprint Status Report")
    st.caption("Collect drupal.org issues for a sprint tag and derive contributors and assignments.")
    settings = load_settings(SETTINGS_FILE)

    col_start, col_end, col_tag = st.columns(3)
    start = col_start.date_input("Sprint start", value=date.today().replace(day=1))
    use_end = col_end.checkbox("Limit to end date", value=False)
    end = col_end.date_input("Sprint end", value=date.today(), disabled=not use_end)
    tag_id = col_tag.number_input("Taxonomy tag id", min_value=1, value=int(settings.default_tag_id), step=1)
    include_assignments = st.checkbox(
        "Scrape assignment events (renders each issue page in a headless browser)",
        value=settings.include_assignments,
    )

    if st.button("Collect report", type="primary"):
        progress = ProgressReporter("Collecting sprint issues from drupal.org")
        try:
            report = run_report(
                start,
                end if use_end else None,
                int(tag_id),
                include_assignments=include_assignments,
                progress=progress,
                settings=settings,
            )
        except SprintReportError as exc:
            progress.error(f"Collection failed: {exc}")
            return
        if report.empty:
            progress.complete("No issues found matching criteria.")
            return
        progress.complete(f"Collected {len(report.records)} issues.")
        st.session_state["sprint_report"] = report
        st.session_state["sprint_report_stamp"] = datetime.now(pytz.timezone(settings.timezone)).strftime(
            FILE_STAMP_FORMAT
        )

    report = st.session_state.get("sprint_report")
    if report is not None:
        render_report_tables(
            report.tables,
            encoding=settings.download_encoding,
            stamp=st.session_state.get("sprint_report_stamp", ""),
        )

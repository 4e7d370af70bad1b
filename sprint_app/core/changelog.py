"""Assignment and status transitions scraped from rendered issue pages.

drupal.org renders field edits made with a comment as a small "change table"
inside the comment (label / old value / new value). New-value cells carry a
leading ``»`` marker meaning "changed to". Walking the comments in document
order gives a running status label, and each "Assigned:" row yields
unassigned/assigned events stamped with that status.

Within one comment, its "Status:" rows are applied before its "Assigned:" rows
regardless of their order in the change table, so an assignment made in the
same comment as a status change carries the new status. Status rows also count
for comments outside the sprint window or without a timestamp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from . import observer as events
from .config import (
    ASSIGNED_LABEL,
    CHANGE_LABEL_CLASS,
    CHANGE_MARKER,
    CHANGE_NEW_CLASS,
    CHANGE_OLD_CLASS,
    CHANGE_TABLE_SELECTOR,
    COMMENT_AUTHOR_SELECTORS,
    COMMENT_SELECTOR,
    COMMENT_TIME_SELECTOR,
    DEFAULT_STATUS_LABEL,
    NEXT_PAGE_SELECTORS,
    STATUS_LABEL,
    UNASSIGNED_VALUE,
)
from .errors import RenderError
from .models import ASSIGNED, UNASSIGNED, AssignmentEvent
from .observer import Observer, emit
from .timeutil import SprintWindow, normalize_timestamp

logger = logging.getLogger(__name__)


class PageRenderer(Protocol):
    def render(self, url: str) -> str: ...


@dataclass(slots=True)
class ChangeRow:
    label: str
    old: str
    new: str


@dataclass(slots=True)
class ChangelogState:
    """Issue-scoped rolling state carried across comments and pages."""

    status: str = DEFAULT_STATUS_LABEL


@dataclass(slots=True)
class PageExtraction:
    events: list[AssignmentEvent] = field(default_factory=list)
    comment_count: int = 0
    next_url: str | None = None


@dataclass(slots=True)
class AssignmentResult:
    events: list[AssignmentEvent] = field(default_factory=list)
    pages: int = 0
    status: str = DEFAULT_STATUS_LABEL
    error: RenderError | None = None


def strip_change_marker(text: str | None) -> str:
    """Remove the leading ``»`` marker and surrounding whitespace.

    >>> strip_change_marker("» Needs review")
    'Needs review'
    """
    value = (text or "").strip()
    if value.startswith(CHANGE_MARKER):
        value = value[len(CHANGE_MARKER):].strip()
    return value


def cell_value(cell: Tag | None) -> str:
    """Text of a change-table cell: the linked username if present, else plain text."""
    if cell is None:
        return ""
    link = cell.find("a")
    if link is not None and link.get_text(strip=True):
        return link.get_text(" ", strip=True)
    return " ".join(cell.get_text(" ", strip=True).split())


def _cell(row: Tag, class_name: str, position: int) -> Tag | None:
    cell = row.find("td", class_=class_name)
    if cell is not None:
        return cell
    cells = row.find_all("td")
    return cells[position] if len(cells) > position else None


def parse_change_rows(block: Tag) -> list[ChangeRow]:
    rows: list[ChangeRow] = []
    for table in block.select(CHANGE_TABLE_SELECTOR):
        for tr in table.find_all("tr"):
            label_cell = _cell(tr, CHANGE_LABEL_CLASS, 0)
            if label_cell is None:
                continue
            rows.append(
                ChangeRow(
                    label=label_cell.get_text(" ", strip=True),
                    old=cell_value(_cell(tr, CHANGE_OLD_CLASS, 1)),
                    new=strip_change_marker(cell_value(_cell(tr, CHANGE_NEW_CLASS, 2))),
                )
            )
    return rows


def _is_assignee(value: str) -> bool:
    return bool(value) and value.lower() != UNASSIGNED_VALUE


def assignment_events(
    row: ChangeRow, *, commenter: str, instant: datetime, status: str
) -> list[AssignmentEvent]:
    """Events for one "Assigned:" row: the previous holder first, then the new one."""
    out: list[AssignmentEvent] = []
    if _is_assignee(row.old):
        out.append(AssignmentEvent(row.old, commenter, UNASSIGNED, instant, status))
    if _is_assignee(row.new):
        out.append(AssignmentEvent(row.new, commenter, ASSIGNED, instant, status))
    return out


def _comment_time(block: Tag, tz) -> datetime | None:
    node = block.select_one(COMMENT_TIME_SELECTOR)
    if node is None:
        return None
    raw = node.get("datetime") or node.get_text(" ", strip=True)
    return normalize_timestamp(raw, tz)


def _comment_author(block: Tag) -> str:
    for selector in COMMENT_AUTHOR_SELECTORS:
        for node in block.select(selector):
            # Usernames inside the change table belong to assignees, not the commenter
            if node.find_parent("table") is not None:
                continue
            name = node.get_text(" ", strip=True)
            if name:
                return name
    return ""


def _comment_blocks(soup: BeautifulSoup) -> list[Tag]:
    blocks = soup.select(COMMENT_SELECTOR)
    matched = set(map(id, blocks))
    # Drop blocks nested inside another matched block
    return [
        b for b in blocks if not any(id(parent) in matched for parent in b.parents)
    ]


def _next_url(soup: BeautifulSoup, base_url: str | None) -> str | None:
    for selector in NEXT_PAGE_SELECTORS:
        link = soup.select_one(selector)
        if link is not None and link.get("href"):
            href = str(link["href"])
            return urljoin(base_url, href) if base_url else href
    return None


def extract_page(
    html: str,
    window: SprintWindow,
    state: ChangelogState,
    *,
    base_url: str | None = None,
    tz=None,
) -> PageExtraction:
    """Extract assignment events from one rendered page of an issue.

    ``state`` is updated in place so the running status carries over to the
    next page of the same issue.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    out = PageExtraction()
    blocks = _comment_blocks(soup)
    out.comment_count = len(blocks)
    for block in blocks:
        rows = parse_change_rows(block)
        for row in rows:
            if row.label == STATUS_LABEL and row.new:
                state.status = row.new
        instant = _comment_time(block, tz)
        if instant is None:
            logger.debug("Skipping comment without timestamp")
            continue
        if not window.contains(instant):
            continue
        commenter = _comment_author(block)
        for row in rows:
            if row.label != ASSIGNED_LABEL:
                continue
            out.events.extend(
                assignment_events(row, commenter=commenter, instant=instant, status=state.status)
            )
    if out.comment_count:
        out.next_url = _next_url(soup, base_url)
    return out


def collect_assignment_events(
    renderer: PageRenderer,
    url: str,
    window: SprintWindow,
    *,
    observer: Observer | None = None,
    tz=None,
) -> AssignmentResult:
    """Render an issue page (and its follow-up pages) and collect assignment events."""
    result = AssignmentResult()
    state = ChangelogState()
    visited: set[str] = set()
    current: str | None = url
    while current and current not in visited:
        visited.add(current)
        try:
            html = renderer.render(current)
        except RenderError as exc:
            logger.error("Failed to render %s: %s", current, exc)
            result.error = exc
            emit(
                observer,
                events.FETCH_ERROR,
                f"Failed to render {current}: {exc}",
                details={"error": exc, "stage": "assignments", "url": current},
            )
            break
        page = extract_page(html, window, state, base_url=current, tz=tz)
        result.pages += 1
        result.events.extend(page.events)
        emit(
            observer,
            events.ASSIGNMENTS_PAGE,
            f"{current}: {page.comment_count} comments, {len(page.events)} assignment events",
            details={"url": current, "comments": page.comment_count, "events": len(page.events)},
        )
        if page.comment_count == 0:
            break
        current = page.next_url
    result.status = state.status
    return result

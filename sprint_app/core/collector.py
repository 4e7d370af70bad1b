"""Sprint-window filtering of issue and comment collections.

Issues are requested newest-changed first. Once a page's oldest ``changed``
value falls before the sprint start and the server still offers more pages,
collection stops: later pages can only hold older changes. An issue whose
``changed`` is old but whose ``created`` falls in the window (possible after
data migrations) on such a later page is therefore missed; this cutoff is a
deliberate trade-off and is kept as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from . import observer as events
from .drupal_client import DrupalAPI
from .errors import FetchError
from .mappers import map_comment
from .observer import Observer, emit
from .timeutil import EPOCH, SprintWindow, format_timestamp, from_epoch

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CollectionResult:
    items: list[dict[str, Any]] = field(default_factory=list)
    pages: int = 0
    stopped_early: bool = False
    error: FetchError | None = None


@dataclass(slots=True)
class ContributorResult:
    names: list[str] = field(default_factory=list)
    comments_seen: int = 0
    pages: int = 0
    error: FetchError | None = None


def _instant(raw: dict[str, Any], key: str, tz) -> datetime:
    return from_epoch(raw.get(key), tz) or EPOCH


def issue_in_window(created: datetime, changed: datetime, window: SprintWindow) -> bool:
    started = changed >= window.start or created >= window.start
    if not started:
        return False
    if window.end is None:
        return True
    return created <= window.end or changed <= window.end


def collect_issues(
    api: DrupalAPI,
    window: SprintWindow,
    tag_id: int | str,
    *,
    observer: Observer | None = None,
    tz=None,
) -> CollectionResult:
    result = CollectionResult()
    walk = api.issues(tag_id)
    for page in walk:
        result.pages += 1
        matched = 0
        oldest_on_page: datetime | None = None
        for raw in page.items:
            changed = _instant(raw, "changed", tz)
            created = _instant(raw, "created", tz)
            if oldest_on_page is None or changed < oldest_on_page:
                oldest_on_page = changed
            if issue_in_window(created, changed, window):
                result.items.append(raw)
                matched += 1
        emit(
            observer,
            events.ISSUES_PAGE,
            f"Page {page.index}: found {matched} matching issues "
            f"(oldest changed: {format_timestamp(oldest_on_page)})",
            details={
                "page": page.index,
                "items": len(page.items),
                "matched": matched,
                "oldest_changed": oldest_on_page,
                "has_next": page.has_next,
            },
        )
        if page.has_next and oldest_on_page is not None and oldest_on_page < window.start:
            result.stopped_early = True
            emit(
                observer,
                events.ISSUES_CUTOFF,
                "Reached issues older than sprint start date. Stopping pagination.",
                details={"page": page.index},
            )
            break

    if walk.error is not None:
        result.error = walk.error
        emit(
            observer,
            events.FETCH_ERROR,
            f"Failed to fetch issues page: {walk.error}",
            details={"error": walk.error, "stage": "issues"},
        )
    emit(
        observer,
        events.ISSUES_DONE,
        f"Total issues collected: {len(result.items)}",
        details={"issues": len(result.items), "pages": result.pages, "stopped_early": result.stopped_early},
    )
    return result


def collect_contributors(
    api: DrupalAPI,
    nid: int | str,
    window: SprintWindow,
    *,
    observer: Observer | None = None,
    tz=None,
) -> ContributorResult:
    """Comment authors of ``nid`` whose comments were created inside the window.

    All comment pages are walked; the server's ``next`` flag is the only stop
    signal. Names keep first-seen order.
    """
    result = ContributorResult()
    seen: dict[str, None] = {}
    walk = api.comments(nid)
    for page in walk:
        result.pages += 1
        counted = 0
        for raw in page.items:
            result.comments_seen += 1
            comment = map_comment(raw, tz)
            if not window.contains(comment.created):
                continue
            if comment.author:
                seen.setdefault(comment.author, None)
                counted += 1
        emit(
            observer,
            events.COMMENTS_PAGE,
            f"Issue #{nid} comments page {page.index}: {counted} in sprint window",
            details={"nid": str(nid), "page": page.index, "items": len(page.items), "in_window": counted},
        )
    if walk.error is not None:
        result.error = walk.error
        emit(
            observer,
            events.FETCH_ERROR,
            f"Failed to fetch comments for issue #{nid}: {walk.error}",
            details={"error": walk.error, "stage": "comments", "nid": str(nid)},
        )
    result.names = list(seen)
    return result

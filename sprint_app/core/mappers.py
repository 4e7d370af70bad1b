"""Mapping raw drupal.org API JSON into IssueModel / CommentModel instances."""

from __future__ import annotations

from typing import Any

from .models import CommentModel, IssueModel
from .status import parse_status_code
from .timeutil import from_epoch


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _reference(value: Any, key: str) -> str | None:
    """Read ``{"uri": ..., "id": ...}`` style references."""
    if not isinstance(value, dict):
        return None
    ref = value.get(key)
    if ref is None or ref == "":
        return None
    return str(ref)


def map_issue(raw: dict[str, Any], tz=None) -> IssueModel:
    return IssueModel(
        nid=_text(raw.get("nid")),
        title=_text(raw.get("title")),
        url=_text(raw.get("url")),
        project_uri=_reference(raw.get("field_project"), "uri"),
        component=_text(raw.get("field_issue_component")),
        status_code=parse_status_code(raw.get("field_issue_status")),
        created=from_epoch(raw.get("created"), tz),
        changed=from_epoch(raw.get("changed"), tz),
        last_status_change=from_epoch(raw.get("field_issue_last_status_change"), tz),
        author_id=_reference(raw.get("author"), "id"),
    )


def map_comment(raw: dict[str, Any], tz=None) -> CommentModel:
    name = raw.get("name")
    return CommentModel(
        cid=_reference(raw, "cid"),
        author=str(name) if name else None,
        created=from_epoch(raw.get("created"), tz),
    )

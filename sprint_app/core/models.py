"""Domain data models for issues, comments, and assignment events."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

ASSIGNED = "assigned"
UNASSIGNED = "unassigned"


@dataclass(slots=True)
class CommentModel:
    cid: str | None
    author: str | None
    created: datetime | None


@dataclass(slots=True)
class IssueModel:
    nid: str
    title: str
    url: str
    project_uri: str | None
    component: str
    status_code: int
    created: datetime | None
    changed: datetime | None
    last_status_change: datetime | None = None
    author_id: str | None = None


@dataclass(slots=True)
class AssignmentEvent:
    contributor: str
    commenter: str
    type: str
    instant: datetime
    status: str


@dataclass(slots=True)
class IssueRecord:
    """One retained issue with everything derived for it during a run."""

    issue: IssueModel
    project_name: str = ""
    contributors: list[str] = field(default_factory=list)
    assignments: list[AssignmentEvent] = field(default_factory=list)

"""Central configuration, constants, and shared column definitions."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# =============================================================================
# Drupal.org API Settings
# =============================================================================
API_BASE_URL = "https://www.drupal.org/api-d7"
API_DELAY_SECONDS: float = 1.0  # Pause between API calls to not overload the server
API_PAGE_LIMIT: int = 50  # Max items per page
REQUEST_TIMEOUT_SECONDS: float = 30.0
USER_AGENT = "DrupalSprintStatusCollector/1.0 (Sprint tracking tool)"

ISSUE_NODE_TYPE = "project_issue"
# Taxonomy vocabulary holding the "Issue tags" terms on drupal.org
TAG_VOCABULARY_PARAM = "taxonomy_vocabulary_9"

DEFAULT_TAG_ID = 205151  # AI Initiative Sprint tag
DEFAULT_OUTPUT_DIR = "status_files"
TIMEZONE = "UTC"

# =============================================================================
# Issue Status Configuration
# =============================================================================
DEFAULT_STATUS_LABEL = "Active"

STATUS_LABELS: dict[int, str] = {
    1: "Active",
    2: "Fixed",
    3: "Closed (duplicate)",
    4: "Postponed",
    5: "Closed (won't fix)",
    6: "Closed (works as designed)",
    7: "Closed (fixed)",
    8: "Needs review",
    13: "Needs work",
    14: "RTBC",
    15: "Patch (to be ported)",
    16: "Postponed (maintainer needs more info)",
    18: "Closed (outdated)",
}

STATUS_NEEDS_REVIEW = 8
STATUS_NEEDS_WORK = 13
STATUS_RTBC = 14
STATUS_FIXED = 2

# Status codes whose last transition time is surfaced in the issues table
TRACKED_STATUS_COLUMNS: dict[int, str] = {
    STATUS_NEEDS_REVIEW: "last_time_in_review",
    STATUS_NEEDS_WORK: "last_time_in_needs_work",
    STATUS_RTBC: "last_time_in_rtbc",
    STATUS_FIXED: "last_time_in_fixed",
}

# =============================================================================
# Report Columns
# =============================================================================
ISSUE_COLUMNS: Sequence[str] = (
    "nid",
    "title",
    "link",
    "project_name",
    "component",
    "current_status",
    "last_time_in_review",
    "last_time_in_needs_work",
    "last_time_in_rtbc",
    "last_time_in_fixed",
    "created",
    "changed",
)

CONTRIBUTOR_COLUMNS: Sequence[str] = (
    "nid",
    "title",
    "link",
    "project_name",
    "contributors",
)

ASSIGNMENT_COLUMNS: Sequence[str] = (
    "nid",
    "title",
    "link",
    "project_name",
    "contributor",
    "type",
    "commenter",
    "date",
    "status",
)

FILE_PREFIXES: dict[str, str] = {
    "issues": "statissues",
    "contributors": "contributors",
    "assignments": "assignments",
}
FILE_STAMP_FORMAT = "%Y-%m-%d_%H%M%S"
REPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CONTRIBUTOR_SEPARATOR = ", "

# =============================================================================
# Rendered Issue Page Markup
# =============================================================================
COMMENT_SELECTOR = "div.comment"
COMMENT_TIME_SELECTOR = "time"
COMMENT_AUTHOR_SELECTORS: Sequence[str] = (
    ".submitted .username",
    ".comment-author .username",
    ".username",
)
CHANGE_TABLE_SELECTOR = "table.nodechanges-field-changes"
CHANGE_LABEL_CLASS = "nodechanges-label"
CHANGE_OLD_CLASS = "nodechanges-old"
CHANGE_NEW_CLASS = "nodechanges-new"
NEXT_PAGE_SELECTORS: Sequence[str] = (
    "li.pager-next a",
    "li.pager__item--next a",
    "a[rel~=next]",
)
ASSIGNED_LABEL = "Assigned:"
STATUS_LABEL = "Status:"
CHANGE_MARKER = "»"  # "changed to" prefix on new-value cells
UNASSIGNED_VALUE = "unassigned"

RENDER_TIMEOUT_MS: int = 30000
RENDER_WAIT_UNTIL = "networkidle"


@dataclass(slots=True)
class AppSettings:
    api_base_url: str = API_BASE_URL
    api_delay_seconds: float = API_DELAY_SECONDS
    api_page_limit: int = API_PAGE_LIMIT
    request_timeout_seconds: float = REQUEST_TIMEOUT_SECONDS
    user_agent: str = USER_AGENT
    default_tag_id: int = DEFAULT_TAG_ID
    output_dir: str = DEFAULT_OUTPUT_DIR
    timezone: str = TIMEZONE
    include_assignments: bool = True
    render_timeout_ms: int = RENDER_TIMEOUT_MS
    headless: bool = True
    download_encoding: str = "utf-8"


def load_settings(path: str | Path | None = None, overrides: Mapping[str, Any] | None = None) -> AppSettings:
    """Build settings from defaults, an optional YAML file, and explicit overrides.

    The YAML file may hold the settings at the top level or under a
    ``sprint_report`` section. Unknown keys are ignored and a missing file
    simply yields the defaults.
    """
    settings = AppSettings()
    known = {f.name for f in fields(AppSettings)}
    data: dict[str, Any] = {}
    if path is not None:
        yaml_path = Path(path)
        if yaml_path.exists():
            loaded = yaml.safe_load(yaml_path.read_text()) or {}
            if not isinstance(loaded, dict):
                logger.warning("Ignoring settings file %s: expected a mapping", yaml_path)
                loaded = {}
            section = loaded.get("sprint_report", loaded)
            data.update(section if isinstance(section, dict) else {})
        else:
            logger.debug("Settings file %s not found; using defaults", yaml_path)
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
    return replace(settings, **{k: v for k, v in data.items() if k in known})

"""Command-line entry point: collect sprint issue reports from drupal.org.

Usage:
  sprint-report <sprint_start_date> [sprint_end_date] [taxonomy_id]

Examples:
  sprint-report 2025-01-01
  sprint-report 2025-01-01 205151
  sprint-report 2025-01-01 2025-01-14 205151
"""

from __future__ import annotations

import argparse
import logging
from contextlib import ExitStack
from dataclasses import dataclass

from sprint_app.core.config import load_settings
from sprint_app.core.drupal_client import DrupalAPI
from sprint_app.core.errors import DateParseError, SprintReportError
from sprint_app.core.observer import LoggingObserver
from sprint_app.core.renderer import PlaywrightRenderer
from sprint_app.core.service import SprintReportService
from sprint_app.core.timeutil import SprintWindow, is_date_string

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_FILE = "settings.yaml"


@dataclass(slots=True)
class SprintArgs:
    start: str
    end: str | None
    tag_id: int


class UsageError(SprintReportError):
    """Positional arguments could not be interpreted."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sprint-report",
        description="Collect drupal.org issue status, contributor, and assignment reports for a sprint.",
        epilog="Example: sprint-report 2025-01-01 2025-01-14 205151",
    )
    parser.add_argument("start", nargs="?", help="Sprint start date (YYYY-MM-DD)")
    parser.add_argument(
        "extra",
        nargs="*",
        metavar="END_OR_TAG",
        help="Optional sprint end date (YYYY-MM-DD) and/or taxonomy tag id",
    )
    parser.add_argument("--output-dir", default=None, help="Directory for CSV files (default: status_files)")
    parser.add_argument(
        "--no-assignments",
        dest="include_assignments",
        action="store_false",
        default=None,
        help="Skip rendering issue pages and the assignments table",
    )
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between API calls")
    parser.add_argument("--config", default=DEFAULT_SETTINGS_FILE, help="YAML settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _parse_tag(value: str) -> int:
    text = value.strip()
    if not text.isdigit():
        raise UsageError(f"Invalid taxonomy id {value!r}; expected a number")
    return int(text)


def resolve_positionals(start: str, extra: list[str], default_tag_id: int) -> SprintArgs:
    """Interpret ``[END_OR_TAG] [TAG]`` after the start date.

    A second token shaped like YYYY-MM-DD is an end date, anything else a tag id.
    A third token is only accepted after an end date.
    """
    if len(extra) > 2:
        raise UsageError("Too many arguments")
    end: str | None = None
    tag_id = default_tag_id
    if extra:
        first = extra[0]
        if is_date_string(first):
            end = first
            if len(extra) == 2:
                tag_id = _parse_tag(extra[1])
        else:
            if len(extra) == 2:
                raise UsageError("A taxonomy id may only follow an end date")
            tag_id = _parse_tag(first)
    return SprintArgs(start=start, end=end, tag_id=tag_id)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if not args.start:
        logger.error("Sprint start date is required.")
        parser.print_usage()
        return

    settings = load_settings(
        args.config,
        overrides={
            "output_dir": args.output_dir,
            "api_delay_seconds": args.delay,
            "include_assignments": args.include_assignments,
        },
    )
    try:
        sprint = resolve_positionals(args.start, args.extra, settings.default_tag_id)
        window = SprintWindow.from_strings(sprint.start, sprint.end, settings.timezone)
    except DateParseError as exc:
        logger.error("%s", exc)
        return
    except UsageError as exc:
        logger.error("%s", exc)
        parser.print_usage()
        return

    logger.info("=== Drupal.org Issue Status Collector ===")
    api = DrupalAPI(
        settings.api_base_url,
        delay_seconds=settings.api_delay_seconds,
        page_limit=settings.api_page_limit,
        timeout=settings.request_timeout_seconds,
        user_agent=settings.user_agent,
    )
    try:
        with ExitStack() as stack:
            renderer = None
            if settings.include_assignments:
                renderer = stack.enter_context(
                    PlaywrightRenderer(
                        headless=settings.headless,
                        timeout_ms=settings.render_timeout_ms,
                        user_agent=settings.user_agent,
                    )
                )
            service = SprintReportService(
                api, renderer, observer=LoggingObserver(), timezone=settings.timezone
            )
            report = service.collect(
                window, sprint.tag_id, include_assignments=settings.include_assignments
            )
    except SprintReportError as exc:
        logger.error("%s", exc)
        return

    if report.empty:
        logger.info("No issues found matching criteria.")
        return
    service.write(report, settings.output_dir, encoding=settings.download_encoding)
    if report.errors:
        logger.warning("Completed with %s fetch error(s); some rows may be incomplete.", len(report.errors))
    logger.info("=== Done ===")


if __name__ == "__main__":
    main()

"""Date parsing and sprint window helpers (pure functions)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone

import pandas as pd
import pytz

from .config import REPORT_TIMESTAMP_FORMAT, TIMEZONE
from .errors import DateParseError

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _resolve_tz(tz):
    if tz is None:
        return pytz.timezone(TIMEZONE)
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def _localize(naive: datetime, tz) -> datetime:
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def is_date_string(value: str | None) -> bool:
    return bool(value) and DATE_PATTERN.match(str(value).strip()) is not None


def parse_date(value: str, tz=None) -> datetime:
    """Parse a ``YYYY-MM-DD`` string into midnight of that day in ``tz``.

    No alternate formats are attempted; anything else raises DateParseError.
    """
    text = (value or "").strip()
    if not DATE_PATTERN.match(text):
        raise DateParseError(f"Invalid date {value!r}. Use YYYY-MM-DD.")
    try:
        naive = datetime.strptime(text, "%Y-%m-%d")
    except ValueError as exc:
        raise DateParseError(f"Invalid date {value!r}: {exc}") from exc
    return _localize(naive, _resolve_tz(tz))


def end_of_day(value: str, tz=None) -> datetime:
    """Return 23:59:59 of the given ``YYYY-MM-DD`` date, localized on its own.

    Localizing the naive end-of-day keeps the correct offset on DST change days.
    """
    start = parse_date(value, tz)
    naive = datetime(start.year, start.month, start.day, 23, 59, 59)
    return _localize(naive, _resolve_tz(tz))


def in_window(instant: datetime | None, start: datetime, end: datetime | None = None) -> bool:
    if instant is None:
        return False
    if instant < start:
        return False
    return end is None or instant <= end


@dataclass(frozen=True, slots=True)
class SprintWindow:
    start: datetime
    end: datetime | None = None

    @classmethod
    def from_strings(cls, start: str, end: str | None = None, tz=None) -> SprintWindow:
        return cls(
            start=parse_date(start, tz),
            end=end_of_day(end, tz) if end else None,
        )

    def contains(self, instant: datetime | None) -> bool:
        return in_window(instant, self.start, self.end)

    def describe(self) -> str:
        if self.end is None:
            return f"{self.start:%Y-%m-%d} onwards"
        return f"{self.start:%Y-%m-%d} to {self.end:%Y-%m-%d}"


def from_epoch(value, tz=None) -> datetime | None:
    """Convert a Unix timestamp (number or numeric string) to an aware datetime.

    Empty, zero, and non-numeric values yield None.
    """
    if value is None or value == "":
        return None
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return None
    if seconds == 0:
        return None
    return datetime.fromtimestamp(seconds, tz=pytz.UTC).astimezone(_resolve_tz(tz))


def normalize_timestamp(value, tz=None) -> datetime | None:
    """Parse an ISO-like timestamp (e.g. a ``<time datetime>`` value) into ``tz``.

    Naive values are taken as UTC. Returns None when the input cannot be parsed.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    try:
        if getattr(ts, "tzinfo", None) is None:
            ts = ts.tz_localize(pytz.UTC)
        ts = ts.tz_convert(_resolve_tz(tz))
    except (TypeError, ValueError):
        return None
    return ts.to_pydatetime()


def format_timestamp(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.strftime(REPORT_TIMESTAMP_FORMAT)

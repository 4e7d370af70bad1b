"""Error kinds raised by the collection pipeline."""

from __future__ import annotations


class SprintReportError(Exception):
    """Base class for all sprint report failures."""


class DateParseError(SprintReportError, ValueError):
    """Raised when a sprint date is not in YYYY-MM-DD form."""


class FetchError(SprintReportError):
    """A remote fetch failed; aborts only the current pagination loop."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class TransportError(FetchError):
    """HTTP request failed, timed out, or returned an error status."""


class DecodeError(FetchError):
    """Response body could not be decoded into the expected payload."""


class RenderError(FetchError):
    """Headless browser rendering of an issue page failed."""

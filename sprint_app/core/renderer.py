"""Headless browser rendering of issue pages.

Issue discussions (and the change tables inside comments) on drupal.org are
injected client side, so the raw server response is not enough; pages are
loaded in Chromium via Playwright and the resulting DOM is serialized.

The browser is started on the first ``render`` call. A startup failure (Playwright
or Chromium missing) is remembered and re-raised as ``RenderError`` on every
later call, so callers treat it like any other per-page render failure.

Usage:
    with PlaywrightRenderer() as renderer:
        html = renderer.render("https://www.drupal.org/node/3500000")
"""

from __future__ import annotations

import logging
from typing import Any

from .config import RENDER_TIMEOUT_MS, RENDER_WAIT_UNTIL, USER_AGENT
from .errors import RenderError

logger = logging.getLogger(__name__)


class PlaywrightRenderer:
    def __init__(
        self,
        *,
        headless: bool = True,
        timeout_ms: int = RENDER_TIMEOUT_MS,
        wait_until: str = RENDER_WAIT_UNTIL,
        user_agent: str | None = USER_AGENT,
    ):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.wait_until = wait_until
        self.user_agent = user_agent
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._startup_error: RenderError | None = None
        self.render_count = 0

    def __enter__(self) -> PlaywrightRenderer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _ensure_browser(self) -> None:
        if self._context is not None:
            return
        if self._startup_error is not None:
            raise RenderError(str(self._startup_error))
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:
            self._startup_error = RenderError(
                "Playwright is not installed. "
                "Install with: pip install playwright && playwright install chromium"
            )
            raise self._startup_error from exc
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            options: dict[str, Any] = {}
            if self.user_agent:
                options["user_agent"] = self.user_agent
            self._context = self._browser.new_context(**options)
        except Exception as exc:
            self.close()
            self._startup_error = RenderError(f"Failed to start headless browser: {exc}")
            raise self._startup_error from exc

    def render(self, url: str) -> str:
        self._ensure_browser()
        logger.debug("Rendering %s", url)
        page = None
        try:
            page = self._context.new_page()
            page.goto(url, wait_until=self.wait_until, timeout=self.timeout_ms)
            html = page.content()
        except Exception as exc:
            raise RenderError(f"Rendering {url} failed: {exc}", url=url) from exc
        finally:
            if page is not None:
                page.close()
        self.render_count += 1
        return html

    def close(self) -> None:
        if self._context is not None:
            self._context.close()
            self._context = None
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

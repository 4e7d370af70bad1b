"""Test configuration ensuring local package import when editable install not active.

If users invoke `pytest` outside the project's virtualenv, we still add the project
root to sys.path so `import sprint_app` works. Also provides an in-memory HTTP
session and page renderer so no test touches the network or a browser.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sprint_app.core.drupal_client import DrupalAPI  # noqa: E402
from sprint_app.core.errors import RenderError  # noqa: E402

API_BASE = "https://api.test/api-d7"
INVALID_JSON = object()


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.payload = payload
        self.text = text

    def json(self):
        if self.payload is INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeSession:
    """Routes GET requests to ``handler(url, params)``.

    The handler returns a payload (wrapped in a 200 response), a FakeResponse,
    or raises to simulate a transport failure.
    """

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.calls = []

    def get(self, url, params=None, timeout=None):
        params = dict(params or {})
        self.calls.append((url, params))
        result = self.handler(url, params)
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(200, result)


class FakeRenderer:
    def __init__(self, pages):
        self.pages = dict(pages)
        self.rendered = []

    def render(self, url):
        self.rendered.append(url)
        if url not in self.pages:
            raise RenderError(f"Rendering {url} failed: net::ERR_NAME_NOT_RESOLVED", url=url)
        return self.pages[url]


def to_epoch(year, month, day, hour=0, minute=0):
    return int(datetime(year, month, day, hour, minute, tzinfo=timezone.utc).timestamp())


@pytest.fixture
def epoch():
    return to_epoch


@pytest.fixture
def make_api():
    def factory(handler, delay_seconds=0.0):
        sleeps = []
        api = DrupalAPI(
            API_BASE,
            delay_seconds=delay_seconds,
            page_limit=50,
            session=FakeSession(handler),
            sleep=sleeps.append,
        )
        api.sleeps = sleeps
        return api

    return factory


@pytest.fixture
def make_renderer():
    return FakeRenderer


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def invalid_json():
    return INVALID_JSON

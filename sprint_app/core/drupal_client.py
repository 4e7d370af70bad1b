"""drupal.org REST (api-d7) client wrapper with paced, paginated collection reads."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

import requests

from .config import (
    API_BASE_URL,
    API_DELAY_SECONDS,
    API_PAGE_LIMIT,
    ISSUE_NODE_TYPE,
    REQUEST_TIMEOUT_SECONDS,
    TAG_VOCABULARY_PARAM,
    USER_AGENT,
)
from .context import RunContext
from .errors import DecodeError, FetchError, TransportError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Page:
    index: int
    items: list[dict[str, Any]]
    has_next: bool


class Pagination:
    """Iterate the pages of a collection endpoint, one request per page.

    Iteration stops on an empty page, when the server offers no ``next`` page,
    or on the first fetch failure. A failure is kept on ``error`` instead of
    being raised, so pages already consumed stay valid. Breaking out of the
    loop stops further requests.
    """

    def __init__(self, api: DrupalAPI, url: str, params: dict[str, Any]):
        self.api = api
        self.url = url
        self.params = dict(params)
        self.error: FetchError | None = None
        self.pages_fetched = 0
        self.items_seen = 0

    def __iter__(self) -> Iterator[Page]:
        index = 0
        while True:
            try:
                data = self.api.get_json(self.url, params={**self.params, "page": index})
            except FetchError as exc:
                logger.error("Failed to fetch page %s of %s: %s", index, self.url, exc)
                self.error = exc
                return
            if not isinstance(data, dict):
                self.error = DecodeError(
                    f"Expected a JSON object for page {index}, got {type(data).__name__}",
                    url=self.url,
                )
                logger.error("%s", self.error)
                return
            items = data.get("list")
            if not isinstance(items, list) or not items:
                logger.debug("No more items on page %s of %s", index, self.url)
                return
            self.pages_fetched += 1
            self.items_seen += len(items)
            has_next = bool(data.get("next"))
            yield Page(index=index, items=items, has_next=has_next)
            if not has_next:
                return
            index += 1


class DrupalAPI:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        delay_seconds: float = API_DELAY_SECONDS,
        page_limit: int = API_PAGE_LIMIT,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        user_agent: str = USER_AGENT,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.delay_seconds = delay_seconds
        self.page_limit = page_limit
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json", "User-Agent": user_agent})
        self._sleep = sleep
        self._first_call = True
        self.request_count = 0

    def endpoint(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _pace(self) -> None:
        """Sleep between API calls; the very first call goes out immediately."""
        if not self._first_call and self.delay_seconds > 0:
            logger.debug("Waiting %.1f second(s) before next API call", self.delay_seconds)
            self._sleep(self.delay_seconds)
        self._first_call = False

    def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        self._pace()
        target = self.endpoint(url)
        logger.debug("Fetching %s params=%s", target, params)
        self.request_count += 1
        try:
            resp = self.session.get(target, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"Request to {target} failed: {exc}", url=target) from exc
        if resp.status_code >= 400:
            raise TransportError(
                f"Request to {target} failed {resp.status_code}: {resp.text[:200]}", url=target
            )
        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"Failed to parse JSON from {target}: {exc}", url=target) from exc

    def paginate(self, path: str, params: dict[str, Any]) -> Pagination:
        query = {"limit": self.page_limit, **params}
        return Pagination(self, self.endpoint(path), query)

    def issues(self, tag_id: int | str) -> Pagination:
        """Issues carrying ``tag_id``, most recently changed first."""
        return self.paginate(
            "node.json",
            {
                "type": ISSUE_NODE_TYPE,
                TAG_VOCABULARY_PARAM: tag_id,
                "sort": "changed",
                "direction": "DESC",
            },
        )

    def comments(self, nid: int | str) -> Pagination:
        return self.paginate("comment.json", {"node": nid})

    # ------------------ Single Resource Lookups ------------------
    def _lookup_field(self, url: str, field_name: str) -> str | None:
        try:
            data = self.get_json(url)
        except FetchError as exc:
            logger.warning("Lookup of %s failed: %s", url, exc)
            return None
        if not isinstance(data, dict) or not data.get(field_name):
            return None
        return str(data[field_name])

    def fetch_project_name(self, uri: str, context: RunContext) -> str | None:
        return context.project_name(uri, lambda u: self._lookup_field(u, "title"))

    def fetch_username(self, uid: int | str) -> str | None:
        return self._lookup_field(f"user/{uid}.json", "name")

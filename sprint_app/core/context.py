"""Run-scoped lookup state shared by the fetch calls of a single report run."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class RunContext:
    """Memoizes project names by API URI for the lifetime of one run.

    Failed lookups are cached as None so a broken project reference is only
    requested once per run.
    """

    project_names: dict[str, str | None] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    def project_name(self, uri: str, fetch: Callable[[str], str | None]) -> str | None:
        if uri in self.project_names:
            self.hits += 1
            return self.project_names[uri]
        self.misses += 1
        name = fetch(uri)
        self.project_names[uri] = name
        return name

    def clear(self) -> None:
        self.project_names.clear()
        self.hits = 0
        self.misses = 0

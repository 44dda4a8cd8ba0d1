"""Builders for the JSON commands sent to the watcher."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from fsmonitor_hook.tokens import Clockspec

DEFAULT_EXCLUDE_DIRNAMES = (".git",)
QUERY_FIELDS = ("name",)


def exclusion_expression(exclude_dirnames: Sequence[str]) -> list[object]:
    """Return the expression that drops files under the given directories."""
    terms: list[object] = [["dirname", name] for name in exclude_dirnames]
    if len(terms) == 1:
        return ["not", terms[0]]
    return ["not", ["anyof", *terms]]


def build_query_request(
    root: Path,
    since: Clockspec,
    exclude_dirnames: Sequence[str] = DEFAULT_EXCLUDE_DIRNAMES,
) -> list[object]:
    """Build the query for files changed under ``root`` since ``since``."""
    options: dict[str, object] = {
        "since": since,
        "fields": list(QUERY_FIELDS),
    }
    if exclude_dirnames:
        options["expression"] = exclusion_expression(exclude_dirnames)
    return ["query", str(root), options]


def build_watch_request(root: Path) -> list[object]:
    return ["watch", str(root)]


def build_clock_request(root: Path) -> list[object]:
    return ["clock", str(root)]

"""Structured JSONL audit log of watcher round trips."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One watcher round trip as seen by the hook."""

    timestamp: str
    command: str
    root: str | None
    exit_code: int | None
    ok: bool
    duration_ms: int
    error: str | None


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def describe_request(request: list[object]) -> tuple[str, str | None]:
    """Return the (command, root) pair of a watcher request without its options."""
    command = request[0] if request and isinstance(request[0], str) else "unknown"
    root = request[1] if len(request) > 1 and isinstance(request[1], str) else None
    return command, root


class JsonlAuditLogger:
    """Append-only JSONL audit logger."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        """Return on-disk JSONL path."""
        return self._path

    def append(self, event: AuditEvent) -> None:
        """Append an event as one JSON object per line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

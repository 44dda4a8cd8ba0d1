"""Translate git's fsmonitor token into a watcher clockspec."""

from __future__ import annotations

from typing import Final

NANOSECONDS_PER_SECOND: Final[int] = 1_000_000_000
MAX_U64: Final[int] = 2**64 - 1
CLOCK_ID_PREFIX: Final[str] = "c"

Clockspec = str | int


def parse_since_token(token: str) -> Clockspec:
    """Return the clockspec for a token.

    Tokens starting with ``c`` are watcher clock ids and pass through
    unchanged. Anything else is read as nanoseconds since the epoch and
    truncated to whole seconds; an unreadable timestamp becomes ``0`` so the
    watcher reports every file.
    """
    if token.startswith(CLOCK_ID_PREFIX):
        return token
    return _parse_u64(token) // NANOSECONDS_PER_SECOND


def _parse_u64(text: str) -> int:
    if text.startswith("+"):
        text = text[1:]
    if not text or not (text.isascii() and text.isdigit()):
        return 0
    value = int(text)
    if value > MAX_U64:
        return 0
    return value

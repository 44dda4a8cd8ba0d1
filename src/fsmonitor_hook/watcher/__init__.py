"""Watcher request builders and transport."""

from .requests import (
    DEFAULT_EXCLUDE_DIRNAMES,
    build_clock_request,
    build_query_request,
    build_watch_request,
    exclusion_expression,
)
from .transport import (
    DEFAULT_WATCHER_COMMAND,
    AuditSink,
    SubprocessTransport,
    WatcherReply,
    WatcherTransport,
    decode_output,
)

__all__ = [
    "AuditSink",
    "DEFAULT_EXCLUDE_DIRNAMES",
    "DEFAULT_WATCHER_COMMAND",
    "SubprocessTransport",
    "WatcherReply",
    "WatcherTransport",
    "build_clock_request",
    "build_query_request",
    "build_watch_request",
    "decode_output",
    "exclusion_expression",
]

"""Git fsmonitor (protocol v2) hook that answers from Watchman."""

from .errors import (
    ClockFetchFailure,
    ConfigError,
    EnvironmentUnavailableError,
    HookError,
    ProtocolViolation,
    TransportFailure,
    UnsupportedVersionError,
    WatchRegistrationFailure,
    render_error_chain,
)
from .protocol import BOOTSTRAP_MARKER, FsmonitorQuery, HookReply, ProtocolState
from .tokens import Clockspec, parse_since_token

__all__ = [
    "BOOTSTRAP_MARKER",
    "ClockFetchFailure",
    "Clockspec",
    "ConfigError",
    "EnvironmentUnavailableError",
    "FsmonitorQuery",
    "HookError",
    "HookReply",
    "ProtocolState",
    "ProtocolViolation",
    "TransportFailure",
    "UnsupportedVersionError",
    "WatchRegistrationFailure",
    "parse_since_token",
    "render_error_chain",
]

__version__ = "0.1.0"

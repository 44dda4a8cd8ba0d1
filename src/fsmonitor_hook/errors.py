"""Failure taxonomy for a single hook invocation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fsmonitor_hook.protocol import HookReply


class HookError(Exception):
    """Base class for every failure that aborts the hook."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UnsupportedVersionError(HookError):
    """Raised when git asks for a protocol version other than 2."""

    def __init__(self, version: int) -> None:
        super().__init__("unsupported version")
        self.version = version


class EnvironmentUnavailableError(HookError):
    """Raised when the work-tree root cannot be determined."""


class ConfigError(HookError, ValueError):
    """Raised when fsmonitor-hook.toml or an override has an invalid shape."""


class TransportFailure(HookError):
    """Raised when the watcher process cannot be run or its output is unreadable.

    ``exit_code`` is the status of a watcher that ran but whose output could
    not be decoded, and None when it never started.
    """

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ProtocolViolation(HookError):
    """Raised when the watcher reply is missing fields or reports an unknown error."""


class WatchRegistrationFailure(HookError):
    """Raised when registering the work tree with the watcher fails."""


class ClockFetchFailure(HookError):
    """Raised when no fresh clock could be obtained after a watch registration.

    ``partial_reply`` holds the "everything changed" answer that must still be
    written to git even though the invocation fails.
    """

    def __init__(self, message: str, partial_reply: HookReply | None = None) -> None:
        super().__init__(message)
        self.partial_reply = partial_reply


def error_chain(error: BaseException) -> list[str]:
    """Return messages for an error and each of its causes, outermost first."""
    messages: list[str] = []
    current: BaseException | None = error
    seen: set[int] = set()
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = current.message if isinstance(current, HookError) else str(current)
        messages.append(text or type(current).__name__)
        current = current.__cause__
    return messages


def render_error_chain(error: BaseException) -> str:
    """Render the full causal chain as one diagnostic string."""
    return ":\n".join(error_chain(error))

"""Query state machine between git's fsmonitor hook and the watcher."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from fsmonitor_hook.errors import (
    ClockFetchFailure,
    HookError,
    ProtocolViolation,
    TransportFailure,
    WatchRegistrationFailure,
)
from fsmonitor_hook.tokens import Clockspec
from fsmonitor_hook.watcher import (
    DEFAULT_EXCLUDE_DIRNAMES,
    WatcherReply,
    WatcherTransport,
    build_clock_request,
    build_query_request,
    build_watch_request,
)

BOOTSTRAP_MARKER = "/"
UNWATCHED_ROOT_ERROR = "unable to resolve root"


class ProtocolState(Enum):
    START = "start"
    QUERYING = "querying"
    SUCCESS = "success"
    ROOT_UNWATCHED = "root_unwatched"
    WATCHING = "watching"
    CLOCK_FETCHING = "clock_fetching"
    BOOTSTRAP_SUCCESS = "bootstrap_success"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class HookReply:
    """Clock token and changed paths to hand back to git."""

    clock: str
    files: tuple[str, ...]

    @classmethod
    def everything_changed(cls, clock: str = BOOTSTRAP_MARKER) -> HookReply:
        return cls(clock=clock, files=(BOOTSTRAP_MARKER,))


def is_unwatched_root_error(message: str) -> bool:
    """Return True when a watcher error means the root was never watched."""
    return UNWATCHED_ROOT_ERROR in message


class FsmonitorQuery:
    """Drives one hook invocation from query to reply.

    The normal path is a single query. When the watcher does not know the
    work tree yet, the root is registered and the answer becomes "everything
    changed" stamped with a clock fetched right after registration.
    """

    def __init__(
        self,
        transport: WatcherTransport,
        work_tree: Path,
        exclude_dirnames: Sequence[str] = DEFAULT_EXCLUDE_DIRNAMES,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._transport = transport
        self._work_tree = work_tree
        self._exclude_dirnames = tuple(exclude_dirnames)
        self._notify = notify
        self._state = ProtocolState.START
        self._transitions: list[ProtocolState] = [ProtocolState.START]

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def transitions(self) -> tuple[ProtocolState, ...]:
        """Every state visited so far, in order."""
        return tuple(self._transitions)

    def run(self, since: Clockspec, token: str | None = None) -> HookReply:
        """Resolve a clockspec into the reply for git.

        ``token`` is the raw value git passed in; it only appears in error
        messages and defaults to the clockspec itself.
        """
        if self._state is not ProtocolState.START:
            raise RuntimeError("FsmonitorQuery.run may only be called once.")
        try:
            return self._run(since, str(since) if token is None else token)
        except HookError:
            self._enter(ProtocolState.FAILED)
            raise

    def _run(self, since: Clockspec, token: str) -> HookReply:
        self._enter(ProtocolState.QUERYING)
        reply = self._transport.send(
            build_query_request(self._work_tree, since, self._exclude_dirnames)
        )

        error = reply.field("error")
        if isinstance(error, str):
            if not is_unwatched_root_error(error):
                raise ProtocolViolation(
                    f"Watcher failed for an unexpected reason {error} (token: {token})"
                )
            self._enter(ProtocolState.ROOT_UNWATCHED)
            return self._bootstrap()

        files = reply.field("files")
        if not isinstance(files, list):
            raise ProtocolViolation("missing file data")
        clock = reply.field("clock")
        self._enter(ProtocolState.SUCCESS)
        return HookReply(
            clock=clock if isinstance(clock, str) else "",
            files=tuple(name for name in files if isinstance(name, str)),
        )

    def _bootstrap(self) -> HookReply:
        self._enter(ProtocolState.WATCHING)
        if self._notify is not None:
            self._notify(f"Adding {self._work_tree} to watcher's watch list")
        try:
            watched = self._transport.send(build_watch_request(self._work_tree)).succeeded
        except TransportFailure as error:
            # Only the exit status of a watch counts, not what it printed.
            if error.exit_code != 0:
                raise WatchRegistrationFailure("watch failed") from error
            watched = True
        if not watched:
            raise WatchRegistrationFailure("watch failed")

        # A clock taken this close to registration may miss events, so the
        # answer is "everything changed" no matter what the clock says.
        fallback = HookReply.everything_changed()
        self._enter(ProtocolState.CLOCK_FETCHING)
        try:
            clocked = self._transport.send(build_clock_request(self._work_tree))
        except TransportFailure as error:
            raise ClockFetchFailure(
                "failed to call watcher clock", partial_reply=fallback
            ) from error
        clock = _fresh_clock(clocked)
        if clock is None:
            raise ClockFetchFailure("failed to call watcher clock", partial_reply=fallback)
        self._enter(ProtocolState.BOOTSTRAP_SUCCESS)
        return HookReply.everything_changed(clock=clock)

    def _enter(self, state: ProtocolState) -> None:
        self._state = state
        self._transitions.append(state)


def _fresh_clock(reply: WatcherReply) -> str | None:
    clock = reply.field("clock")
    if isinstance(clock, str):
        return clock
    return None

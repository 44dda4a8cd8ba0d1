from __future__ import annotations

from pathlib import Path

import pytest

from fsmonitor_hook.errors import (
    ClockFetchFailure,
    ProtocolViolation,
    TransportFailure,
    WatchRegistrationFailure,
    render_error_chain,
)
from fsmonitor_hook.protocol import FsmonitorQuery, HookReply, ProtocolState
from fsmonitor_hook.watcher import WatcherReply

ROOT = Path("/work/repo")
UNWATCHED = WatcherReply(
    payload={"error": "unable to resolve root /work/repo: directory is not watched"},
    exit_code=1,
)


class ScriptedTransport:
    """Replays replies or raises exceptions in order, recording requests."""

    def __init__(self, *outcomes: WatcherReply | Exception) -> None:
        self._outcomes = list(outcomes)
        self.requests: list[list[object]] = []

    def send(self, request: list[object]) -> WatcherReply:
        self.requests.append(request)
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def test_unwatched_root_registers_watch_then_fetches_clock() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        WatcherReply(payload={"watch": "/work/repo"}, exit_code=0),
        WatcherReply(payload={"clock": "c:99"}, exit_code=0),
    )
    notices: list[str] = []
    query = FsmonitorQuery(transport=transport, work_tree=ROOT, notify=notices.append)

    reply = query.run("c:1")

    assert reply == HookReply(clock="c:99", files=("/",))
    assert [request[0] for request in transport.requests] == ["query", "watch", "clock"]
    assert transport.requests[1] == ["watch", "/work/repo"]
    assert transport.requests[2] == ["clock", "/work/repo"]
    assert notices == ["Adding /work/repo to watcher's watch list"]
    assert query.transitions == (
        ProtocolState.START,
        ProtocolState.QUERYING,
        ProtocolState.ROOT_UNWATCHED,
        ProtocolState.WATCHING,
        ProtocolState.CLOCK_FETCHING,
        ProtocolState.BOOTSTRAP_SUCCESS,
    )


def test_unwatched_match_is_case_sensitive() -> None:
    transport = ScriptedTransport(
        WatcherReply(payload={"error": "Unable to resolve root /work/repo"}, exit_code=1)
    )

    with pytest.raises(ProtocolViolation):
        FsmonitorQuery(transport=transport, work_tree=ROOT).run("c:1")

    assert len(transport.requests) == 1


def test_unexpected_watcher_error_includes_text_and_token() -> None:
    transport = ScriptedTransport(
        WatcherReply(payload={"error": "some other problem"}, exit_code=1)
    )
    query = FsmonitorQuery(transport=transport, work_tree=ROOT)

    with pytest.raises(ProtocolViolation) as excinfo:
        query.run(0, token="not-a-number")

    assert "some other problem" in excinfo.value.message
    assert "not-a-number" in excinfo.value.message
    assert query.state is ProtocolState.FAILED


def test_failed_watch_process_aborts_before_clock() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        WatcherReply(payload={"error": "permission denied"}, exit_code=1),
    )
    query = FsmonitorQuery(transport=transport, work_tree=ROOT)

    with pytest.raises(WatchRegistrationFailure, match="watch failed"):
        query.run("c:1")

    assert [request[0] for request in transport.requests] == ["query", "watch"]
    assert query.transitions[-2:] == (ProtocolState.WATCHING, ProtocolState.FAILED)


def test_watch_transport_failure_is_chained() -> None:
    transport = ScriptedTransport(UNWATCHED, TransportFailure("Couldn't start watcher"))

    with pytest.raises(WatchRegistrationFailure) as excinfo:
        FsmonitorQuery(transport=transport, work_tree=ROOT).run("c:1")

    assert render_error_chain(excinfo.value) == "watch failed:\nCouldn't start watcher"


def test_clock_without_clock_field_keeps_dirty_marker() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        WatcherReply(payload={"watch": "/work/repo"}, exit_code=0),
        WatcherReply(payload={"error": "boom"}, exit_code=1),
    )
    query = FsmonitorQuery(transport=transport, work_tree=ROOT)

    with pytest.raises(ClockFetchFailure, match="failed to call watcher clock") as excinfo:
        query.run("c:1")

    assert excinfo.value.partial_reply == HookReply(clock="/", files=("/",))
    assert query.transitions[-2:] == (ProtocolState.CLOCK_FETCHING, ProtocolState.FAILED)


def test_clock_transport_failure_keeps_dirty_marker() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        WatcherReply(payload={"watch": "/work/repo"}, exit_code=0),
        TransportFailure("Watcher didn't return valid JSON"),
    )

    with pytest.raises(ClockFetchFailure) as excinfo:
        FsmonitorQuery(transport=transport, work_tree=ROOT).run("c:1")

    assert excinfo.value.partial_reply == HookReply.everything_changed()
    assert isinstance(excinfo.value.__cause__, TransportFailure)


def test_watch_exiting_zero_with_unreadable_output_still_counts() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        TransportFailure("Expecting value: line 1 column 1 (char 0)", exit_code=0),
        WatcherReply(payload={"clock": "c:7"}, exit_code=0),
    )
    query = FsmonitorQuery(transport=transport, work_tree=ROOT)

    reply = query.run("c:1")

    assert reply == HookReply(clock="c:7", files=("/",))
    assert query.state is ProtocolState.BOOTSTRAP_SUCCESS


def test_watch_exiting_non_zero_with_unreadable_output_fails() -> None:
    transport = ScriptedTransport(
        UNWATCHED,
        TransportFailure("Expecting value: line 1 column 1 (char 0)", exit_code=2),
    )

    with pytest.raises(WatchRegistrationFailure):
        FsmonitorQuery(transport=transport, work_tree=ROOT).run("c:1")

    assert [request[0] for request in transport.requests] == ["query", "watch"]

"""One-shot JSON round trips with the watcher process."""

from __future__ import annotations

import json
import subprocess
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, TextIO

from fsmonitor_hook.errors import TransportFailure
from fsmonitor_hook.logging import AuditEvent, describe_request, utc_timestamp

DEFAULT_WATCHER_COMMAND = ("watchman", "-j", "--no-pretty")


@dataclass(slots=True, frozen=True)
class WatcherReply:
    """Decoded watcher output plus the exit status of the process that sent it."""

    payload: object
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def field(self, name: str) -> object:
        """Return a top-level field of an object payload, or None."""
        if not isinstance(self.payload, dict):
            return None
        return self.payload.get(name)


class WatcherTransport(Protocol):
    def send(self, request: list[object]) -> WatcherReply: ...


class AuditSink(Protocol):
    def append(self, event: AuditEvent) -> None: ...


class SubprocessTransport:
    """Runs the watcher once per request in JSON input mode.

    The request is written to the child's stdin, stdin is closed, and the
    whole of stdout is collected after the child exits. The child's stderr is
    inherited so watcher diagnostics reach the user unchanged. A failing
    audit log only produces a warning on ``diagnostics``.
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_WATCHER_COMMAND,
        audit: AuditSink | None = None,
        diagnostics: TextIO | None = None,
    ) -> None:
        if not command:
            raise ValueError("Watcher command must not be empty.")
        self._command = tuple(command)
        self._audit = audit
        self._diagnostics = diagnostics

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    def send(self, request: list[object]) -> WatcherReply:
        """Send one request and return the decoded reply."""
        started = time.monotonic()
        exit_code: int | None = None
        try:
            encoded = json.dumps(request, separators=(",", ":")).encode("utf-8")
            try:
                completed = subprocess.run(
                    list(self._command),
                    input=encoded,
                    stdout=subprocess.PIPE,
                    check=False,
                )
            except OSError as error:
                raise TransportFailure("Couldn't start watcher") from error
            exit_code = completed.returncode
            payload = decode_output(completed.stdout, exit_code=exit_code)
            reply = WatcherReply(payload=payload, exit_code=exit_code)
        except TransportFailure as error:
            self._record(request, started, exit_code, error.message)
            raise
        self._record(request, started, exit_code, None)
        return reply

    def _record(
        self,
        request: list[object],
        started: float,
        exit_code: int | None,
        error: str | None,
    ) -> None:
        if self._audit is None:
            return
        command, root = describe_request(request)
        event = AuditEvent(
            timestamp=utc_timestamp(),
            command=command,
            root=root,
            exit_code=exit_code,
            ok=error is None and exit_code == 0,
            duration_ms=int((time.monotonic() - started) * 1000),
            error=error,
        )
        try:
            self._audit.append(event)
        except OSError as write_error:
            self._audit = None
            stream = self._diagnostics if self._diagnostics is not None else sys.stderr
            print(f"warning: audit log disabled: {write_error}", file=stream, flush=True)


def decode_output(output: bytes, exit_code: int | None = None) -> object:
    """Decode watcher stdout as a single JSON value."""
    try:
        text = output.decode("utf-8")
    except UnicodeDecodeError as error:
        raise TransportFailure("Watcher didn't return valid JSON", exit_code=exit_code) from error
    try:
        return json.loads(text)
    except json.JSONDecodeError as error:
        raise TransportFailure(str(error), exit_code=exit_code) from error

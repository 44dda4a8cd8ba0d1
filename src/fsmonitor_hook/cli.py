"""Command-line entrypoint invoked by git as the fsmonitor hook."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import BinaryIO, TextIO

from fsmonitor_hook.config import CliOverrides, HookConfig, load_effective_config
from fsmonitor_hook.encoder import write_reply
from fsmonitor_hook.errors import (
    ClockFetchFailure,
    ConfigError,
    EnvironmentUnavailableError,
    HookError,
    UnsupportedVersionError,
    render_error_chain,
)
from fsmonitor_hook.logging import JsonlAuditLogger
from fsmonitor_hook.protocol import FsmonitorQuery, HookReply
from fsmonitor_hook.tokens import parse_since_token
from fsmonitor_hook.watcher import SubprocessTransport, WatcherTransport

SUPPORTED_VERSION = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the hook invocation contract."""
    parser = argparse.ArgumentParser(
        prog="git-fsmonitor-watchman",
        description=(
            "Git fsmonitor hook backed by Watchman.\n"
            "https://git-scm.com/docs/githooks#_fsmonitor_watchman"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("version", type=int, help="The version of the interface.")
    parser.add_argument(
        "token", help="Watchman clockspec: a clock id or nanoseconds since the epoch."
    )
    parser.add_argument(
        "--watchman", default=None, help="Watchman executable. Defaults to 'watchman' on PATH."
    )
    parser.add_argument(
        "--audit-log",
        default=None,
        help="Append one JSON line per watcher round trip to this file.",
    )
    return parser


def resolve_work_tree() -> Path:
    """Return the current directory, which git sets to the work-tree root."""
    try:
        return Path.cwd()
    except OSError as error:
        raise EnvironmentUnavailableError("Couldn't get working directory") from error


def build_transport(
    config: HookConfig, diagnostics: TextIO | None = None
) -> SubprocessTransport:
    """Create the subprocess transport, attaching the audit log when enabled."""
    audit: JsonlAuditLogger | None = None
    if config.audit.path is not None:
        try:
            audit = JsonlAuditLogger(path=config.audit.path)
        except OSError as error:
            raise ConfigError(f"Couldn't open audit log {config.audit.path}") from error
    return SubprocessTransport(
        command=config.watcher.command, audit=audit, diagnostics=diagnostics
    )


def run_hook(
    version: int,
    token: str,
    overrides: CliOverrides | None = None,
    transport: WatcherTransport | None = None,
    diagnostics: TextIO | None = None,
) -> HookReply:
    """Answer one fsmonitor request, raising HookError on failure."""
    if version != SUPPORTED_VERSION:
        raise UnsupportedVersionError(version)
    work_tree = resolve_work_tree()
    config = load_effective_config(work_tree=work_tree, overrides=overrides)
    stream = diagnostics if diagnostics is not None else sys.stderr
    if transport is None:
        transport = build_transport(config, diagnostics=stream)

    def notify(message: str) -> None:
        print(message, file=stream, flush=True)

    query = FsmonitorQuery(
        transport=transport,
        work_tree=config.work_tree,
        exclude_dirnames=config.watcher.exclude_dirnames,
        notify=notify,
    )
    return query.run(parse_since_token(token), token=token)


def main(
    argv: list[str] | None = None,
    stdout: BinaryIO | None = None,
    stderr: TextIO | None = None,
    transport: WatcherTransport | None = None,
) -> int:
    """Entrypoint for the fsmonitor hook process."""
    out_stream = stdout if stdout is not None else sys.stdout.buffer
    err_stream = stderr if stderr is not None else sys.stderr
    args = build_arg_parser().parse_args(argv)
    overrides = CliOverrides(
        watchman=args.watchman,
        audit_log=Path(args.audit_log) if args.audit_log is not None else None,
    )
    try:
        reply = run_hook(
            version=args.version,
            token=args.token,
            overrides=overrides,
            transport=transport,
            diagnostics=err_stream,
        )
        write_reply(reply, out_stream)
    except ClockFetchFailure as error:
        if error.partial_reply is not None:
            write_reply(error.partial_reply, out_stream)
        print(render_error_chain(error), file=err_stream)
        return 1
    except HookError as error:
        print(render_error_chain(error), file=err_stream)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

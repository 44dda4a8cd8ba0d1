"""Null-delimited output format read by git's fsmonitor integration."""

from __future__ import annotations

from typing import BinaryIO

from fsmonitor_hook.errors import ProtocolViolation
from fsmonitor_hook.protocol import HookReply

SEPARATOR = b"\0"


def encode_reply(reply: HookReply) -> bytes:
    """Return ``<clock>\\0<path>\\0...`` as UTF-8 bytes."""
    try:
        parts = [part.encode("utf-8") for part in (reply.clock, *reply.files)]
    except UnicodeEncodeError as error:
        raise ProtocolViolation(
            "Watcher returned a name that can't be encoded as UTF-8"
        ) from error
    return SEPARATOR.join(parts) + SEPARATOR


def write_reply(reply: HookReply, stream: BinaryIO) -> None:
    """Write the whole reply to ``stream`` and flush it.

    The reply is encoded before the first byte is written, so an
    unencodable name leaves ``stream`` untouched.
    """
    stream.write(encode_reply(reply))
    stream.flush()

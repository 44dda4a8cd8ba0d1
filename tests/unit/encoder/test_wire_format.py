from __future__ import annotations

import io

import pytest

from fsmonitor_hook.encoder import encode_reply, write_reply
from fsmonitor_hook.errors import ProtocolViolation
from fsmonitor_hook.protocol import HookReply


def _written(reply: HookReply) -> bytes:
    stream = io.BytesIO()
    write_reply(reply, stream)
    return stream.getvalue()


def test_clock_and_paths_are_null_terminated() -> None:
    reply = HookReply(clock="c:123", files=("a.txt", "b/c.txt"))

    assert _written(reply) == b"c:123\0a.txt\0b/c.txt\0"


def test_empty_file_list_yields_only_clock() -> None:
    assert _written(HookReply(clock="c:1", files=())) == b"c:1\0"


def test_order_and_duplicates_are_preserved() -> None:
    reply = HookReply(clock="c:2", files=("z", "a", "z"))

    assert _written(reply) == b"c:2\0z\0a\0z\0"


def test_non_ascii_paths_are_utf8() -> None:
    reply = HookReply(clock="c:3", files=("café.txt",))

    assert _written(reply) == "c:3\0café.txt\0".encode("utf-8")


def test_bootstrap_reply_marks_everything_changed() -> None:
    assert _written(HookReply.everything_changed()) == b"/\0/\0"
    assert _written(HookReply.everything_changed(clock="c:99")) == b"c:99\0/\0"


def test_encode_reply_matches_streamed_bytes() -> None:
    reply = HookReply(clock="c:4", files=("x", "y/z"))

    assert encode_reply(reply) == _written(reply)
    assert b"\n" not in encode_reply(reply)


def test_unencodable_name_writes_nothing() -> None:
    reply = HookReply(clock="c:1", files=("ok", "bad\udcff"))
    stream = io.BytesIO()

    with pytest.raises(ProtocolViolation) as excinfo:
        write_reply(reply, stream)

    assert stream.getvalue() == b""
    assert isinstance(excinfo.value.__cause__, UnicodeEncodeError)

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeStream
from pyon import EndOfStream, FooterFormatError, FrameFormatError, FrameScanner, Preamble, StreamReadError, parse_preamble


def _scanner(*chunks: bytes, error=None) -> FrameScanner:
    return FrameScanner(FakeStream(chunks, error=error))


def test_parse_preamble():
    assert parse_preamble(b"PyON 1 heartbeat") == Preamble(seq=1, kind="heartbeat")
    assert parse_preamble(b"PyON 12 units\r") == Preamble(seq=12, kind="units")


@pytest.mark.parametrize(
    "line",
    [b"PyOFF 1 units", b"PyON x units", b"PyON 1", b"PyON 1 units extra", b"P\xff 1 units"],
)
def test_parse_preamble_rejects_malformed(line):
    with pytest.raises(FrameFormatError):
        parse_preamble(line)


def test_next_preamble_keeps_body_bytes():
    scanner = _scanner(b"PyON 1 heartbeat\n42\n---\n")

    preamble = asyncio.run(scanner.next_preamble())

    assert preamble == Preamble(seq=1, kind="heartbeat")
    assert scanner.pending == b"42\n---\n"


def test_next_preamble_skips_noise_chunks():
    scanner = _scanner(b"> ", b"garbage without sentinel\n", b"noise PyON 7 slots\n[]")

    preamble = asyncio.run(scanner.next_preamble())

    assert preamble == Preamble(seq=7, kind="slots")
    assert scanner.pending == b"[]"


def test_next_preamble_spanning_reads():
    scanner = _scanner(b"Py", b"ON 3 un", b"its\n[", b"]")

    preamble = asyncio.run(scanner.next_preamble())

    assert preamble == Preamble(seq=3, kind="units")
    assert scanner.pending == b"["


def test_next_preamble_without_newline_fails():
    scanner = _scanner(b"P" + b"x" * 400)

    with pytest.raises(FrameFormatError):
        asyncio.run(scanner.next_preamble())


def test_next_preamble_wrong_marker_fails():
    scanner = _scanner(b"Please wait\n")

    with pytest.raises(FrameFormatError):
        asyncio.run(scanner.next_preamble())


def test_pushed_back_bytes_are_served_first():
    scanner = _scanner(b"stream")
    scanner.push_back(b"tail")
    scanner.push_back(b"head-")

    async def read_all():
        return [await scanner.read_chunk(), await scanner.read_chunk()]

    assert asyncio.run(read_all()) == [b"head-tail", b"stream"]


def test_end_of_stream_and_read_errors():
    with pytest.raises(EndOfStream):
        asyncio.run(_scanner().read_chunk())
    with pytest.raises(StreamReadError):
        asyncio.run(_scanner(error=ConnectionResetError("reset")).read_chunk())


@pytest.mark.parametrize(
    "chunks",
    [
        (b"\n---\n",),
        (b"\n\n---\n",),
        (b"\r\n---\n",),
        (b"\n", b"---\n"),
        (b"\n-", b"--\n"),
    ],
)
def test_verify_footer_accepts_footer(chunks):
    scanner = _scanner(*chunks)

    asyncio.run(scanner.verify_footer())

    assert scanner.pending == b""


def test_verify_footer_leaves_next_frame():
    scanner = _scanner(b"\n---\nPyON 2 heartbeat\n")

    asyncio.run(scanner.verify_footer())

    assert scanner.pending == b"PyON 2 heartbeat\n"


@pytest.mark.parametrize("data", [b"---\n", b"\n--x\n", b"\n  ---\n", b"\n===\n"])
def test_verify_footer_rejects_mismatch(data):
    scanner = _scanner(data)

    with pytest.raises(FooterFormatError):
        asyncio.run(scanner.verify_footer())


def test_drain_frame_consumes_through_footer():
    scanner = _scanner(b'{"options": "whatever"}\n', b"--", b"-\nPyON 9 heartbeat\n")

    asyncio.run(scanner.drain_frame())

    assert scanner.pending == b"PyON 9 heartbeat\n"


def test_drain_frame_with_empty_body():
    scanner = _scanner(b"---\nrest")

    asyncio.run(scanner.drain_frame())

    assert scanner.pending == b"rest"

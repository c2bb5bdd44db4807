from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .constants import (
    BODY_READ_SIZE,
    ENCODING,
    FOOTER,
    FOOTER_LINE,
    MAX_LINE_SIZE,
    PREAMBLE_MARKER,
    PREAMBLE_SENTINEL,
    PREAMBLE_TERMINATOR,
    READ_CHUNK_SIZE,
)
from .errors import EndOfStream, FooterFormatError, FrameFormatError, ProtocolError, StreamReadError

logger = logging.getLogger(__name__)

_BLANK = b" \t\r\n"


class ByteStream(Protocol):
    """Duplex byte stream the scanner reads from (`b""` means the peer closed it)."""

    async def read(self, size: int) -> bytes: ...

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class Preamble:
    """Header line of one frame: `PyON <seq> <kind>`."""

    seq: int
    kind: str


def parse_preamble(line: bytes) -> Preamble:
    """Parse the text between the sentinel and the newline."""
    try:
        text = line.decode(ENCODING)
    except UnicodeDecodeError as exc:
        raise FrameFormatError(f"Preamble is not valid text: {line!r}") from exc
    tokens = text.split()
    if len(tokens) != 3 or tokens[0] != PREAMBLE_MARKER:
        raise FrameFormatError(f"Unexpected preamble: {text!r}")
    try:
        seq = int(tokens[1])
    except ValueError as exc:
        raise FrameFormatError(f"Sequence number is not an integer: {tokens[1]!r}") from exc
    return Preamble(seq=seq, kind=tokens[2])


class FrameScanner:
    """Finds frame boundaries on a byte stream that carries no length prefix.

    Bytes read past a boundary go into ``_pending`` and are served before the
    stream is read again, so nothing is lost between preamble, body and footer.
    """

    def __init__(self, stream: ByteStream, chunk_size: int = READ_CHUNK_SIZE) -> None:
        self.stream = stream
        self.chunk_size = chunk_size
        self._pending = bytearray()

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    def push_back(self, data: bytes) -> None:
        if data:
            self._pending[:0] = data

    async def read_chunk(self, size: Optional[int] = None) -> bytes:
        size = size or self.chunk_size
        if self._pending:
            chunk = bytes(self._pending[:size])
            del self._pending[:size]
            return chunk
        try:
            chunk = await self.stream.read(size)
        except ProtocolError:
            raise
        except (ConnectionError, OSError) as exc:
            raise StreamReadError(f"Cannot read next PyON data: {exc}") from exc
        if not chunk:
            raise EndOfStream("daemon closed the connection")
        return chunk

    async def next_preamble(self) -> Preamble:
        """Skip noise up to the next sentinel and consume the preamble line."""
        while True:
            chunk = await self.read_chunk()
            start = chunk.find(PREAMBLE_SENTINEL)
            if start >= 0:
                break
            logger.debug("Skipped %d bytes before any preamble", len(chunk))

        line = bytearray(chunk[start:])
        while True:
            end = line.find(PREAMBLE_TERMINATOR)
            if end >= 0:
                break
            if len(line) > MAX_LINE_SIZE:
                raise FrameFormatError(f"No end of preamble within {MAX_LINE_SIZE} bytes: {bytes(line)!r}")
            line += await self.read_chunk()
        if end > MAX_LINE_SIZE:
            raise FrameFormatError(f"Preamble longer than {MAX_LINE_SIZE} bytes")

        self.push_back(bytes(line[end + 1 :]))
        preamble = parse_preamble(bytes(line[:end]))
        logger.debug("Frame %d (%s)", preamble.seq, preamble.kind)
        return preamble

    async def verify_footer(self) -> None:
        """Consume `\\n---\\n` right after a decoded body.

        Blank lines between the body and the dashes are tolerated; the dashes
        must still start a line.
        """
        last_blank = b""
        while True:
            chunk = await self.read_chunk()
            rest = chunk.lstrip(_BLANK)
            skipped = len(chunk) - len(rest)
            if skipped:
                last_blank = chunk[skipped - 1 : skipped]
            if rest:
                break
        if last_blank != PREAMBLE_TERMINATOR:
            raise FooterFormatError(f"Unexpected bytes where PyON footer was expected: {rest[:16]!r}")

        line = bytearray(rest)
        while len(line) < len(FOOTER_LINE):
            line += await self.read_chunk()
        if bytes(line[: len(FOOTER_LINE)]) != FOOTER_LINE:
            raise FooterFormatError(f"Unexpected bytes where PyON footer was expected: {bytes(line[:16])!r}")
        self.push_back(bytes(line[len(FOOTER_LINE) :]))

    async def drain_frame(self) -> int:
        """Throw away a body up to and including its footer; returns the bytes dropped."""
        # The preamble's own newline may be the first byte of the footer.
        window = bytearray(PREAMBLE_TERMINATOR)
        dropped = 0
        while True:
            idx = window.find(FOOTER)
            if idx >= 0:
                self.push_back(bytes(window[idx + len(FOOTER) :]))
                return dropped + idx
            keep = len(FOOTER) - 1
            dropped += max(len(window) - keep, 0)
            window = window[-keep:] + await self.read_chunk(BODY_READ_SIZE)


__all__ = ["ByteStream", "Preamble", "parse_preamble", "FrameScanner"]

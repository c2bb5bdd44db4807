from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Tuple

from .commands import FrameKind
from .constants import BODY_READ_SIZE, ENCODING, MAX_BODY_SIZE, MAX_LINE_SIZE, PREAMBLE_TERMINATOR
from .errors import IntegerFormatError, RecordFormatError
from .framing import FrameScanner
from .records import HeartbeatRecord, QueueRecord, SlotRecord, UpdateRecord, records_from_list
from .transcode import BooleanTranscoder
from .validator import validate_body

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")
_WHITESPACE = frozenset(b" \t\r\n")
_OPEN = frozenset(b"[{")
_CLOSE = frozenset(b"]}")
_QUOTE = ord('"')
_BACKSLASH = ord("\\")


class ArrayBoundary:
    """Tracks bracket depth over a streamed array literal to find where it ends."""

    def __init__(self) -> None:
        self.started = False
        self.depth = 0
        self.in_string = False
        self.escaped = False

    def feed(self, data: bytes) -> Optional[int]:
        """Return the offset just past the closing bracket, or None if not seen yet."""
        for i, byte in enumerate(data):
            if not self.started:
                if byte in _WHITESPACE:
                    continue
                if byte != ord("["):
                    raise RecordFormatError(f"Expected an array body, found {bytes([byte])!r}")
                self.started = True
                self.depth = 1
                continue
            if self.in_string:
                if self.escaped:
                    self.escaped = False
                elif byte == _BACKSLASH:
                    self.escaped = True
                elif byte == _QUOTE:
                    self.in_string = False
            elif byte == _QUOTE:
                self.in_string = True
            elif byte in _OPEN:
                self.depth += 1
            elif byte in _CLOSE:
                self.depth -= 1
                if self.depth == 0:
                    return i + 1
        return None


class RecordDecoder:
    """Decodes one frame body for a given kind tag.

    ``decode`` returns the records together with the bytes read past the end of
    the body; the caller hands those back to the scanner before checking the
    footer.  One decoder serves one stream, so the boolean transcoder keeps its
    state for the whole connection.
    """

    def __init__(self, max_body_size: int = MAX_BODY_SIZE) -> None:
        self.max_body_size = max_body_size
        self.transcoder = BooleanTranscoder()

    async def decode(self, kind: str, scanner: FrameScanner) -> Tuple[List[UpdateRecord], bytes]:
        if kind == FrameKind.HEARTBEAT:
            record, remainder = await self.decode_heartbeat(scanner)
            return [record], remainder
        if kind == FrameKind.UNITS:
            items, remainder = await self._read_array(kind, scanner)
            return records_from_list(QueueRecord, items), remainder
        if kind == FrameKind.SLOTS:
            items, remainder = await self._read_array(kind, scanner, transcode=True)
            return records_from_list(SlotRecord, items), remainder
        raise RecordFormatError(f"No decoder for frame kind {kind!r}")

    async def decode_heartbeat(self, scanner: FrameScanner) -> Tuple[HeartbeatRecord, bytes]:
        line = bytearray()
        while True:
            line += await scanner.read_chunk()
            end = line.find(PREAMBLE_TERMINATOR)
            if end >= 0:
                break
            if len(line) > MAX_LINE_SIZE:
                raise IntegerFormatError(f"Cannot find the end of heartbeat data within {MAX_LINE_SIZE} bytes")
        text = bytes(line[:end]).decode(ENCODING, errors="replace").strip()
        if not _INTEGER.fullmatch(text):
            raise IntegerFormatError(f"Failed to parse the data as integer value: {text!r}")
        # The newline stays with the remainder: it opens the footer.
        return HeartbeatRecord(counter=int(text)), bytes(line[end:])

    async def _read_array(self, kind: str, scanner: FrameScanner, transcode: bool = False) -> Tuple[list, bytes]:
        boundary = ArrayBoundary()
        body = bytearray()
        while True:
            chunk = await scanner.read_chunk(BODY_READ_SIZE)
            end = boundary.feed(chunk)
            piece = chunk if end is None else chunk[:end]
            body += self.transcoder.feed(piece) if transcode else piece
            if end is not None:
                remainder = chunk[end:]
                break
            if len(body) > self.max_body_size:
                raise RecordFormatError(f"{kind} body exceeds {self.max_body_size} bytes")

        try:
            items = json.loads(body.decode(ENCODING))
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            raise RecordFormatError(f"Error occurred while {kind} body was parsed: {exc}") from exc
        validate_body(kind, items)
        logger.debug("Decoded %d %s entries (%d bytes)", len(items), kind, len(body))
        return items, remainder


__all__ = ["ArrayBoundary", "RecordDecoder"]

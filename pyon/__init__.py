"""
PyON protocol package: frame scanning, record decoding, error taxonomy and the
`updates add` command used to subscribe to the daemon's push updates.
"""

from .commands import TARGET_KINDS, UPDATE_SLOTS, FrameKind, UpdateTarget, encode_subscription, is_known_kind
from .constants import DEFAULT_ENDPOINT, ENCODING, FOOTER
from .decoder import ArrayBoundary, RecordDecoder
from .errors import (
    ConnectError,
    EndOfStream,
    ErrorCode,
    FooterFormatError,
    FrameFormatError,
    IntegerFormatError,
    ProtocolError,
    RecordFormatError,
    StreamReadError,
    WriteError,
)
from .framing import ByteStream, FrameScanner, Preamble, parse_preamble
from .records import HeartbeatRecord, QueueRecord, SlotRecord, UpdateRecord
from .transcode import BooleanTranscoder
from .validator import load_schema, validate_body

__all__ = [
    "FrameKind",
    "UpdateTarget",
    "UPDATE_SLOTS",
    "TARGET_KINDS",
    "encode_subscription",
    "is_known_kind",
    "DEFAULT_ENDPOINT",
    "ENCODING",
    "FOOTER",
    "ArrayBoundary",
    "RecordDecoder",
    "ErrorCode",
    "ProtocolError",
    "ConnectError",
    "WriteError",
    "StreamReadError",
    "FrameFormatError",
    "IntegerFormatError",
    "RecordFormatError",
    "FooterFormatError",
    "EndOfStream",
    "ByteStream",
    "FrameScanner",
    "Preamble",
    "parse_preamble",
    "HeartbeatRecord",
    "QueueRecord",
    "SlotRecord",
    "UpdateRecord",
    "BooleanTranscoder",
    "load_schema",
    "validate_body",
]

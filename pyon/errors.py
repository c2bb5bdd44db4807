from __future__ import annotations

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    """Failure classes surfaced by the stream session."""

    CONNECT_FAILED = 1001
    WRITE_FAILED = 1002
    READ_FAILED = 1003
    FRAME_FORMAT = 2001
    INTEGER_FORMAT = 2002
    RECORD_FORMAT = 2003
    FOOTER_FORMAT = 2004
    END_OF_STREAM = 3001


class ProtocolError(Exception):
    """Structured protocol exception carrying an error code + message."""

    code: ErrorCode = ErrorCode.FRAME_FORMAT
    retryable: bool = True

    def __init__(self, message: str = "", code: Optional[ErrorCode] = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(f"{self.code.name} ({int(self.code)}): {message}")

    def to_payload(self) -> dict:
        """Map error into a plain dict for logs and reports."""
        return {
            "error_code": int(self.code),
            "error_name": self.code.name,
            "error_message": self.message,
            "retryable": self.retryable,
        }


class ConnectError(ProtocolError):
    """The stream to the daemon could not be established."""

    code = ErrorCode.CONNECT_FAILED


class WriteError(ProtocolError):
    """A subscription command could not be written."""

    code = ErrorCode.WRITE_FAILED


class StreamReadError(ProtocolError):
    """Reading from the stream failed for a reason other than a clean close."""

    code = ErrorCode.READ_FAILED


class FrameFormatError(ProtocolError):
    code = ErrorCode.FRAME_FORMAT


class IntegerFormatError(ProtocolError):
    code = ErrorCode.INTEGER_FORMAT


class RecordFormatError(ProtocolError):
    code = ErrorCode.RECORD_FORMAT


class FooterFormatError(ProtocolError):
    code = ErrorCode.FOOTER_FORMAT


class EndOfStream(ProtocolError):
    """The daemon closed the connection; the session does not come back from this."""

    code = ErrorCode.END_OF_STREAM
    retryable = False


__all__ = [
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
]

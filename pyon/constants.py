"""Protocol-wide constants for the PyON update stream."""

ENCODING = "utf-8"
PREAMBLE_SENTINEL = b"P"
PREAMBLE_MARKER = "PyON"
PREAMBLE_TERMINATOR = b"\n"
FOOTER = b"\n---\n"
FOOTER_LINE = b"---\n"
DEFAULT_ENDPOINT = "localhost:36330"
READ_CHUNK_SIZE = 64  # bytes per scanner read
HANDSHAKE_READ_SIZE = 65536  # welcome banner is read and thrown away
MAX_LINE_SIZE = 256  # preamble and heartbeat lines
BODY_READ_SIZE = 4096
MAX_BODY_SIZE = 4 * 1024 * 1024  # 4 MB upper bound for a single units/slots body
DEFAULT_RECONNECT_BACKOFF = 5  # seconds

__all__ = [
    "ENCODING",
    "PREAMBLE_SENTINEL",
    "PREAMBLE_MARKER",
    "PREAMBLE_TERMINATOR",
    "FOOTER",
    "FOOTER_LINE",
    "DEFAULT_ENDPOINT",
    "READ_CHUNK_SIZE",
    "HANDSHAKE_READ_SIZE",
    "MAX_LINE_SIZE",
    "BODY_READ_SIZE",
    "MAX_BODY_SIZE",
    "DEFAULT_RECONNECT_BACKOFF",
]

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from monitor.config import ConfigError, split_endpoint
from pyon.errors import ConnectError, WriteError
from pyon.framing import ByteStream

logger = logging.getLogger(__name__)


class StreamConnection:
    """TCP stream to the daemon's command port."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, endpoint: str = "") -> None:
        self.reader = reader
        self.writer = writer
        self.endpoint = endpoint
        self.closed = False

    @classmethod
    async def open(cls, endpoint: str, timeout: Optional[float] = None) -> "StreamConnection":
        try:
            host, port = split_endpoint(endpoint)
            reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
        except (ConfigError, OSError, asyncio.TimeoutError) as exc:
            raise ConnectError(f"Connection to {endpoint} failed: {exc}") from exc
        logger.info("Connected to %s", endpoint)
        return cls(reader, writer, endpoint)

    async def read(self, size: int) -> bytes:
        """Read up to `size` bytes; `b""` means the daemon closed the stream."""
        return await self.reader.read(size)

    async def write(self, data: bytes) -> None:
        try:
            self.writer.write(data)
            await self.writer.drain()
        except (ConnectionResetError, BrokenPipeError, ConnectionAbortedError, OSError) as exc:
            raise WriteError(f"Write to {self.endpoint} failed: {exc}") from exc

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError) as exc:
            logger.debug("Ignoring error while closing %s: %s", self.endpoint, exc)


Dialer = Callable[[str], Awaitable[ByteStream]]


def make_dialer(timeout: Optional[float] = None) -> Dialer:
    """Dialer that opens a real TCP connection with the given connect timeout."""

    async def dial(endpoint: str) -> StreamConnection:
        return await StreamConnection.open(endpoint, timeout)

    return dial


__all__ = ["StreamConnection", "Dialer", "make_dialer"]

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pyon.errors import ProtocolError

T = TypeVar("T")


class RecordChannel(Generic[T]):
    """Unbuffered handoff between one producer and one consumer.

    ``put`` returns only once a consumer has taken the item, so a producer can
    never run ahead of its consumer.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._queue: asyncio.Queue[T] = asyncio.Queue(maxsize=1)

    async def put(self, item: T) -> None:
        await self._queue.put(item)
        await self._queue.join()

    async def get(self) -> T:
        item = await self._queue.get()
        self._queue.task_done()
        return item

    def __repr__(self) -> str:
        return f"RecordChannel({self.name!r})"


@dataclass(frozen=True)
class SessionReport:
    """Error surfaced by the session, with whether the session gave up for good."""

    error: ProtocolError
    fatal: bool

    @property
    def message(self) -> str:
        return str(self.error)


ErrorChannel = RecordChannel[SessionReport]


def report_for(error: ProtocolError, fatal: Optional[bool] = None) -> SessionReport:
    return SessionReport(error=error, fatal=not error.retryable if fatal is None else fatal)


__all__ = ["RecordChannel", "SessionReport", "ErrorChannel", "report_for"]

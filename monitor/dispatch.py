from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Optional, Protocol, Set

from monitor.core.channels import RecordChannel, SessionReport
from monitor.core.session import SessionManager
from monitor.documents import BaseDocument, heartbeat_document, index_suffix, queue_info_document, slot_info_document
from monitor.sink import SinkError

logger = logging.getLogger(__name__)

Formatter = Callable[[Any, str], BaseDocument]


class DocumentSink(Protocol):
    async def index(self, index_name: str, document: bytes) -> Any: ...


class Dispatcher:
    """Drains the session channels and forwards every record to the sink.

    Each channel has its own consumer task, so only the order within one kind is
    kept.  Indexing runs in background tasks and never holds up a channel.
    """

    def __init__(
        self,
        session: SessionManager,
        sink: DocumentSink,
        client_name: str = "",
        index_prefix: str = "foldingathome",
    ) -> None:
        self.session = session
        self.sink = sink
        self.client_name = client_name
        self.index_prefix = index_prefix
        self.delivered = 0
        self.failed = 0
        self._pending: Set[asyncio.Task] = set()

    def index_name(self, kind: str) -> str:
        return f"{self.index_prefix}-{kind}{index_suffix()}"

    async def run(self) -> int:
        """Dispatch until the session reports a fatal error; returns the exit status."""
        consumers = [
            asyncio.create_task(self._consume(self.session.heartbeats, "heartbeat", heartbeat_document), name="dispatch-heartbeat"),
            asyncio.create_task(self._consume(self.session.queue_info, "queueinfo", queue_info_document), name="dispatch-queueinfo"),
            asyncio.create_task(self._consume(self.session.slot_info, "slotinfo", slot_info_document), name="dispatch-slotinfo"),
        ]
        try:
            report = await self.supervise()
        finally:
            for task in consumers:
                task.cancel()
            await asyncio.gather(*consumers, return_exceptions=True)
            await self.flush()
        logger.error("Stopping: %s", report.message)
        return 1

    async def supervise(self) -> SessionReport:
        """Log every session report and return the first fatal one."""
        while True:
            report = await self.session.errors.get()
            if report.fatal:
                return report
            logger.warning("Stream error: %s", report.message)

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _consume(self, channel: RecordChannel[Any], kind: str, formatter: Formatter) -> None:
        while True:
            record = await channel.get()
            try:
                body = formatter(record, self.client_name).to_bytes()
            except ValueError as exc:
                logger.warning("Cannot format %s record: %s", kind, exc)
                self.failed += 1
                continue
            task = asyncio.create_task(self._index(self.index_name(kind), body))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _index(self, index_name: str, body: bytes) -> Optional[Any]:
        try:
            result = await self.sink.index(index_name, body)
        except SinkError as exc:
            logger.warning("%s", exc)
            self.failed += 1
            return None
        self.delivered += 1
        logger.debug("Indexed document into %s", index_name)
        return result


__all__ = ["Dispatcher", "DocumentSink"]

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pytest

from monitor.core import SessionManager, SessionReport

BANNER = b"\nWelcome to the Folding@home Client command server.\n> "

UNITS_BODY = (
    b'[\n  {"id": "00", "state": "RUNNING", "error": "NO_ERROR", "project": 14576, "run": 0, '
    b'"clone": 2096, "gen": 48, "core": "0xa7", "unit": "0x0000003000000000000038f00000830", '
    b'"percentdone": "12.34%", "eta": "2 hours 10 mins", "ppd": "51234", "creditestimate": "9405", '
    b'"waitingon": "", "nextattempt": "0.00 secs", "timeremaining": "2.82 days", "totalframes": 100, '
    b'"framesdone": 12, "assigned": "2020-04-04T10:00:00Z", "timeout": "2020-04-05T10:00:00Z", '
    b'"deadline": "2020-04-07T10:00:00Z", "ws": "128.252.203.10", "cs": "0.0.0.0", "attempts": 0, '
    b'"slot": "00", "tpf": "3 mins 40 secs", "basecredit": "9405"},\n'
    b'  {"id": "01", "state": "READY", "error": "NO_ERROR", "project": 16435, "run": 3, '
    b'"clone": 7, "gen": 1, "slot": "01", "percentdone": "0.00%", "ppd": "0"}\n]'
)

SLOTS_BODY = (
    b'[\n  {"id": "00", "status": "RUNNING", "description": "cpu:11", "reason": "", "idle": False},\n'
    b'  {"id": "01", "status": "PAUSED", "description": "gpu:0:TU106 [GeForce RTX 2070]", '
    b'"reason": "paused", "idle": True}\n]'
)


def frame(seq: int, kind: str, body: bytes) -> bytes:
    return b"PyON %d %s\n" % (seq, kind.encode()) + body + b"\n---\n"


def split_at(data: bytes, offsets: Iterable[int]) -> List[bytes]:
    chunks, start = [], 0
    for offset in sorted(set(offsets)):
        if 0 < offset < len(data):
            chunks.append(data[start:offset])
            start = offset
    chunks.append(data[start:])
    return chunks


class FakeStream:
    """Scripted duplex stream: serves `chunks` in order, then `error` or EOF."""

    def __init__(
        self,
        chunks: Iterable[bytes],
        error: Optional[BaseException] = None,
        write_error: Optional[BaseException] = None,
    ) -> None:
        self.chunks = deque(chunks)
        self.error = error
        self.write_error = write_error
        self.written: List[bytes] = []
        self.reads: List[int] = []
        self.closed = False

    async def read(self, size: int) -> bytes:
        self.reads.append(size)
        await asyncio.sleep(0)
        if not self.chunks:
            if self.error is not None:
                raise self.error
            return b""
        chunk = self.chunks.popleft()
        if len(chunk) > size:
            self.chunks.appendleft(chunk[size:])
            chunk = chunk[:size]
        return chunk

    async def write(self, data: bytes) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)

    async def close(self) -> None:
        self.closed = True


class FakeDialer:
    """Hands out prepared streams (or raises prepared errors) one dial at a time."""

    def __init__(self, *outcomes) -> None:
        self.outcomes = deque(outcomes)
        self.endpoints: List[str] = []
        self.streams: List[FakeStream] = []

    async def __call__(self, endpoint: str) -> FakeStream:
        self.endpoints.append(endpoint)
        outcome = self.outcomes.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        self.streams.append(outcome)
        return outcome


@dataclass
class SessionRun:
    session: SessionManager
    dialer: FakeDialer
    records: Dict[str, list] = field(default_factory=dict)
    reports: List[SessionReport] = field(default_factory=list)
    sleeps: List[float] = field(default_factory=list)


def run_session(*outcomes, heartbeat: int = 60, queue_info: int = 30, slot_info: int = 30) -> SessionRun:
    """Run a session against fake streams until it reports a fatal error."""

    async def runner() -> SessionRun:
        dialer = FakeDialer(*outcomes)
        sleeps: List[float] = []

        async def fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        session = SessionManager(endpoint="localhost:36330", dialer=dialer, sleep=fake_sleep)
        result = SessionRun(session=session, dialer=dialer, sleeps=sleeps)
        channels = {}
        if heartbeat:
            channels["heartbeat"] = session.watch_heartbeat(heartbeat)
        if queue_info:
            channels["queue_info"] = session.watch_queue_info(queue_info)
        if slot_info:
            channels["slot_info"] = session.watch_slot_info(slot_info)

        async def consume(name, channel):
            while True:
                result.records[name].append(await channel.get())

        consumers = []
        for name, channel in channels.items():
            result.records[name] = []
            consumers.append(asyncio.create_task(consume(name, channel)))

        task = asyncio.create_task(session.run())
        while True:
            report = await asyncio.wait_for(session.errors.get(), timeout=5)
            result.reports.append(report)
            if report.fatal:
                break
        await asyncio.wait_for(task, timeout=5)
        for consumer in consumers:
            consumer.cancel()
        await asyncio.gather(*consumers, return_exceptions=True)
        return result

    return asyncio.run(runner())


@pytest.fixture
def units_frame() -> bytes:
    return frame(2, "units", UNITS_BODY)


@pytest.fixture
def slots_frame() -> bytes:
    return frame(3, "slots", SLOTS_BODY)

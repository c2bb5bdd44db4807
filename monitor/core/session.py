from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Dict, List, Optional, Union

from monitor.core.channels import ErrorChannel, RecordChannel, report_for
from monitor.core.network import Dialer, make_dialer
from pyon.commands import TARGET_KINDS, FrameKind, UpdateTarget, encode_subscription, is_known_kind
from pyon.constants import DEFAULT_ENDPOINT, DEFAULT_RECONNECT_BACKOFF, HANDSHAKE_READ_SIZE
from pyon.decoder import RecordDecoder
from pyon.errors import ConnectError, ProtocolError
from pyon.framing import ByteStream, FrameScanner
from pyon.records import HeartbeatRecord, QueueRecord, SlotRecord

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[Any]]


class SessionState(StrEnum):
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    SUBSCRIBING = "subscribing"
    STREAMING = "streaming"
    DRAINING = "draining"
    FAILED = "failed"


@dataclass(frozen=True)
class Subscription:
    target: UpdateTarget
    interval: int

    @property
    def command(self) -> bytes:
        return encode_subscription(self.target, self.interval)


class SessionManager:
    """Owns the daemon connection and turns its frames into records.

    A single task runs :meth:`run`: dial, discard the welcome banner, send one
    ``updates add`` per watched target, then scan and decode frames until the
    stream fails.  Every failure is reported on ``errors``; a clean close by the
    daemon ends the session, anything else is retried on a brand-new stream after
    ``reconnect_backoff`` seconds, with all subscriptions sent again.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        dialer: Optional[Dialer] = None,
        reconnect_backoff: float = DEFAULT_RECONNECT_BACKOFF,
        connect_timeout: Optional[float] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.endpoint = endpoint
        self.reconnect_backoff = reconnect_backoff
        self._dialer: Dialer = dialer or make_dialer(connect_timeout)
        self._sleep = sleep

        self.heartbeats: RecordChannel[HeartbeatRecord] = RecordChannel("heartbeat")
        self.queue_info: RecordChannel[QueueRecord] = RecordChannel("queue-info")
        self.slot_info: RecordChannel[SlotRecord] = RecordChannel("slot-info")
        self.errors: ErrorChannel = RecordChannel("errors")
        self._channels: Dict[FrameKind, RecordChannel[Any]] = {
            FrameKind.HEARTBEAT: self.heartbeats,
            FrameKind.UNITS: self.queue_info,
            FrameKind.SLOTS: self.slot_info,
        }

        self.state = SessionState.CONNECTING
        self.attempts = 0
        self._subscriptions: Dict[UpdateTarget, Subscription] = {}
        self._stream: Optional[ByteStream] = None
        self._task: Optional[asyncio.Task] = None

    # Subscriptions --------------------------------------------------------

    def watch(self, target: Union[str, UpdateTarget], interval: int) -> RecordChannel[Any]:
        """Request pushes of `target` every `interval` seconds; returns the target's channel."""
        if int(interval) <= 0:
            raise ValueError(f"update interval must be positive, got {interval}")
        subscription = Subscription(UpdateTarget(target), int(interval))
        self._subscriptions[subscription.target] = subscription
        return self._channels[TARGET_KINDS[subscription.target]]

    def watch_heartbeat(self, interval: int) -> RecordChannel[HeartbeatRecord]:
        return self.watch(UpdateTarget.HEARTBEAT, interval)

    def watch_queue_info(self, interval: int) -> RecordChannel[QueueRecord]:
        return self.watch(UpdateTarget.QUEUE_INFO, interval)

    def watch_slot_info(self, interval: int) -> RecordChannel[SlotRecord]:
        return self.watch(UpdateTarget.SLOT_INFO, interval)

    @property
    def subscriptions(self) -> List[Subscription]:
        return list(self._subscriptions.values())

    # Lifecycle ------------------------------------------------------------

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="pyon-session")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def run(self) -> None:
        """Drive the session until the daemon closes the stream."""
        while True:
            error: Optional[ProtocolError] = None
            try:
                await self._run_once()
            except ProtocolError as exc:
                error = exc
            finally:
                await self._close_stream()
            if error is None:
                return

            self._set_state(SessionState.DRAINING)
            report = report_for(error)
            # the consumer of `errors` logs the report
            await self.errors.put(report)
            if report.fatal:
                self._set_state(SessionState.FAILED)
                return
            logger.debug("Reconnecting to %s in %ss", self.endpoint, self.reconnect_backoff)
            await self._sleep(self.reconnect_backoff)

    async def _run_once(self) -> None:
        self._set_state(SessionState.CONNECTING)
        self.attempts += 1
        try:
            self._stream = await self._dialer(self.endpoint)
        except ProtocolError:
            raise
        except OSError as exc:
            raise ConnectError(f"Connection to {self.endpoint} failed: {exc}") from exc

        scanner = FrameScanner(self._stream)
        self._set_state(SessionState.HANDSHAKING)
        banner = await scanner.read_chunk(HANDSHAKE_READ_SIZE)
        logger.debug("Discarded %d bytes of welcome banner", len(banner))

        self._set_state(SessionState.SUBSCRIBING)
        for subscription in self._subscriptions.values():
            await self._stream.write(subscription.command)
            logger.debug("Subscribed to %s every %ss", subscription.target.value, subscription.interval)

        self._set_state(SessionState.STREAMING)
        await self._stream_frames(scanner)

    async def _stream_frames(self, scanner: FrameScanner) -> None:
        decoder = RecordDecoder()
        while True:
            preamble = await scanner.next_preamble()
            if not is_known_kind(preamble.kind):
                dropped = await scanner.drain_frame()
                logger.debug("Dropped frame %d of unknown kind %r (%d bytes)", preamble.seq, preamble.kind, dropped)
                continue

            kind = FrameKind(preamble.kind)
            records, remainder = await decoder.decode(kind, scanner)
            scanner.push_back(remainder)
            if self._is_watched(kind):
                channel = self._channels[kind]
                for record in records:
                    await channel.put(record)
            else:
                logger.debug("No subscriber for %s, dropping %d records", kind.value, len(records))
            await scanner.verify_footer()

    def _is_watched(self, kind: FrameKind) -> bool:
        return any(TARGET_KINDS[target] == kind for target in self._subscriptions)

    async def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            await stream.close()

    def _set_state(self, state: SessionState) -> None:
        if state != self.state:
            logger.debug("Session %s -> %s", self.state.value, state.value)
        self.state = state


__all__ = ["SessionManager", "SessionState", "Subscription"]

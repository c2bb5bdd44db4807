"""Mapping of decoded records onto the documents that get indexed."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pyon.records import HeartbeatRecord, QueueRecord, SlotRecord


def _now() -> datetime:
    return datetime.now().astimezone()


def rfc3339(moment: Optional[datetime] = None) -> str:
    return (moment or _now()).replace(microsecond=0).isoformat()


def index_suffix(moment: Optional[datetime] = None) -> str:
    moment = moment or _now()
    return f"_{moment.year}-{moment.month}"


def parse_percent(text: str) -> float:
    try:
        return float(text.strip().rstrip("%"))
    except ValueError:
        return 0.0


def parse_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


class BaseDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(alias="@timestamp")
    client_name: str

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class HeartbeatDocument(BaseDocument):
    counter: int


class QueueInfoDocument(BaseDocument):
    client_slot: str
    project: int
    run: int
    clone: int
    gen: int
    prcg: str
    state: str
    error: str
    core: str
    unit: str
    percent_done: float
    eta: str
    point_per_day: int
    credit_estimate: int
    # field name kept as already indexed
    wating_on: str
    next_attempt: str
    time_remaining: str
    total_frames: int
    frames_done: int
    assigned: str
    timeout: str
    deadline: str
    ws: str
    cs: str
    attempts: int
    slot: str
    tpf: str
    base_credit: int


class SlotInfoDocument(BaseDocument):
    client_slot: str
    id: str
    status: str
    description: str
    reason: str
    idle: bool


def heartbeat_document(record: HeartbeatRecord, client_name: str, moment: Optional[datetime] = None) -> HeartbeatDocument:
    return HeartbeatDocument(timestamp=rfc3339(moment), client_name=client_name, counter=record.counter)


def queue_info_document(record: QueueRecord, client_name: str, moment: Optional[datetime] = None) -> QueueInfoDocument:
    return QueueInfoDocument(
        timestamp=rfc3339(moment),
        client_name=client_name,
        client_slot=f"{client_name}/{record.slot}",
        project=record.project,
        run=record.run,
        clone=record.clone,
        gen=record.gen,
        prcg=f"({record.project},{record.run},{record.clone},{record.gen})",
        state=record.state,
        error=record.error,
        core=record.core,
        unit=record.unit,
        percent_done=parse_percent(record.percentdone),
        eta=record.eta,
        point_per_day=parse_int(record.ppd),
        credit_estimate=parse_int(record.creditestimate),
        wating_on=record.waitingon,
        next_attempt=record.nextattempt,
        time_remaining=record.timeremaining,
        total_frames=record.totalframes,
        frames_done=record.framesdone,
        assigned=record.assigned,
        timeout=record.timeout,
        deadline=record.deadline,
        ws=record.ws,
        cs=record.cs,
        attempts=record.attempts,
        slot=record.slot,
        tpf=record.tpf,
        base_credit=parse_int(record.basecredit),
    )


def slot_info_document(record: SlotRecord, client_name: str, moment: Optional[datetime] = None) -> SlotInfoDocument:
    return SlotInfoDocument(
        timestamp=rfc3339(moment),
        client_name=client_name,
        client_slot=f"{client_name}/{record.id}",
        id=record.id,
        status=record.status,
        description=record.description,
        reason=record.reason,
        idle=record.idle,
    )


__all__ = [
    "HeartbeatDocument",
    "QueueInfoDocument",
    "SlotInfoDocument",
    "heartbeat_document",
    "queue_info_document",
    "slot_info_document",
    "index_suffix",
    "parse_percent",
    "parse_int",
    "rfc3339",
]

from __future__ import annotations

from typing import Any, Dict, List, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import RecordFormatError


class BaseRecord(BaseModel):
    """Base for every decoded update record; values are kept as the daemon sent them."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)


RecordT = TypeVar("RecordT", bound=BaseRecord)


class HeartbeatRecord(BaseRecord):
    counter: int


class QueueRecord(BaseRecord):
    """State of one work unit, as pushed under `$queue-info`."""

    id: str = ""
    state: str = ""
    error: str = ""
    project: int = 0
    run: int = 0
    clone: int = 0
    gen: int = 0
    core: str = ""
    unit: str = ""
    percentdone: str = Field(default="", description="Progress text such as 12.34%")
    eta: str = ""
    ppd: str = Field(default="", description="Points per day")
    creditestimate: str = ""
    waitingon: str = ""
    nextattempt: str = ""
    timeremaining: str = ""
    totalframes: int = 0
    framesdone: int = 0
    assigned: str = ""
    timeout: str = ""
    deadline: str = ""
    ws: str = Field(default="", description="Work server address")
    cs: str = Field(default="", description="Collection server address")
    attempts: int = 0
    slot: str = ""
    tpf: str = Field(default="", description="Time per frame")
    basecredit: str = ""


class SlotRecord(BaseRecord):
    """State of one compute slot, as pushed under `$slot-info`."""

    id: str = ""
    status: str = ""
    description: str = ""
    reason: str = ""
    idle: bool = False


UpdateRecord = Union[HeartbeatRecord, QueueRecord, SlotRecord]


def records_from_list(model: Type[RecordT], items: List[Dict[str, Any]]) -> List[RecordT]:
    """Validate every item or none of them."""
    try:
        return [model.model_validate(item) for item in items]
    except ValidationError as exc:
        raise RecordFormatError(f"{model.__name__} validation failed: {exc}") from exc


__all__ = [
    "BaseRecord",
    "HeartbeatRecord",
    "QueueRecord",
    "SlotRecord",
    "UpdateRecord",
    "records_from_list",
]

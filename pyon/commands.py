from __future__ import annotations

from enum import StrEnum
from typing import Dict, Union

from .constants import ENCODING


class FrameKind(StrEnum):
    """Kind tags carried in the frame preamble."""

    HEARTBEAT = "heartbeat"
    UNITS = "units"
    SLOTS = "slots"


class UpdateTarget(StrEnum):
    """Named update targets accepted by `updates add`."""

    HEARTBEAT = "$heartbeat"
    QUEUE_INFO = "$queue-info"
    SLOT_INFO = "$slot-info"


# The daemon multiplexes pushes by this index, so it must stay unique per target.
UPDATE_SLOTS: Dict[UpdateTarget, int] = {
    UpdateTarget.HEARTBEAT: 0,
    UpdateTarget.QUEUE_INFO: 1,
    UpdateTarget.SLOT_INFO: 2,
}

TARGET_KINDS: Dict[UpdateTarget, FrameKind] = {
    UpdateTarget.HEARTBEAT: FrameKind.HEARTBEAT,
    UpdateTarget.QUEUE_INFO: FrameKind.UNITS,
    UpdateTarget.SLOT_INFO: FrameKind.SLOTS,
}


def normalize_kind(kind: Union[str, FrameKind]) -> str:
    """Convert enum/string into canonical kind text."""
    return kind.value if isinstance(kind, FrameKind) else str(kind)


def is_known_kind(value: str) -> bool:
    """Check if `value` is a kind tag this client decodes."""
    try:
        FrameKind(value)
        return True
    except ValueError:
        return False


def encode_subscription(target: Union[str, UpdateTarget], interval: int) -> bytes:
    """Build the `updates add <slot> <interval> <target>` command line."""
    target = UpdateTarget(target)
    if interval <= 0:
        raise ValueError(f"update interval must be positive, got {interval}")
    return f"updates add {UPDATE_SLOTS[target]} {int(interval)} {target.value}\n".encode(ENCODING)


__all__ = [
    "FrameKind",
    "UpdateTarget",
    "UPDATE_SLOTS",
    "TARGET_KINDS",
    "normalize_kind",
    "is_known_kind",
    "encode_subscription",
]

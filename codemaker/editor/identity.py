# codemaker/editor/identity.py
"""
Two-phase identity of locally created tick boxes.

A new box is `PendingId` until the service acknowledges it with a
permanent id; `reconcile` turns the acknowledgement into a `ConfirmedId`
and, when the box moved while the creation request was in flight, the one
update needed to store its latest position.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class PendingId:
    temp_id: int


@dataclass(frozen=True)
class ConfirmedId:
    id: int


EntityId = Union[PendingId, ConfirmedId]


@dataclass(frozen=True)
class BoxAck:
    """Service answer to a box creation that carried a temp id."""

    id: int
    temp_id: int
    x: int
    y: int

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "BoxAck":
        return cls(
            id=int(payload["id"]),
            temp_id=int(payload["tempId"]),
            x=int(payload["x"]),
            y=int(payload["y"]),
        )


@dataclass(frozen=True)
class CorrectionRequest:
    box_id: int
    x: int
    y: int

    def to_params(self, page_key: Optional[str]) -> Dict[str, Any]:
        return {"updatebox": self.box_id, "x": self.x, "y": self.y, "page": page_key}


def reconcile(
    pending: PendingId,
    ack: BoxAck,
    current_center: Tuple[int, int],
) -> Tuple[ConfirmedId, Optional[CorrectionRequest]]:
    """
    Args:
        pending: the box's temporary identity
        ack: the creation acknowledgement
        current_center: the box's rounded centre right now

    Returns:
        The permanent identity, plus a correction when the stored centre
        differs from where the box is now.
    """
    if ack.temp_id != pending.temp_id:
        raise ValueError(f"ack for temp id {ack.temp_id} does not match {pending.temp_id}")

    confirmed = ConfirmedId(ack.id)
    if current_center != (ack.x, ack.y):
        return confirmed, CorrectionRequest(ack.id, current_center[0], current_center[1])
    return confirmed, None

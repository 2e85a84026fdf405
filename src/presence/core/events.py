from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import ClassVar

from ..utils.geo import Coordinate


class ActivityKind(str, Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"
    OVERTIME_START = "overtime_start"
    OVERTIME_END = "overtime_end"
    CLIENT_VISIT_START = "client_visit_start"
    CLIENT_VISIT_END = "client_visit_end"


SUB_PHASE_KINDS = frozenset(
    {
        ActivityKind.BREAK_START,
        ActivityKind.BREAK_END,
        ActivityKind.OVERTIME_START,
        ActivityKind.OVERTIME_END,
        ActivityKind.CLIENT_VISIT_START,
        ActivityKind.CLIENT_VISIT_END,
    }
)


def new_event_id() -> str:
    return uuid.uuid4().hex


# -------------------- Olay varyantları --------------------
# Her tür yalnızca geçişin gerektirdiği alanları taşır.


@dataclass(frozen=True)
class ActivityEvent:
    timestamp: datetime
    seq: int
    id: str = field(default_factory=new_event_id, kw_only=True)

    kind: ClassVar[ActivityKind]

    def sort_key(self) -> tuple[datetime, int, str]:
        return (self.timestamp, self.seq, self.id)


@dataclass(frozen=True)
class ClockInEvent(ActivityEvent):
    location: Coordinate = field(kw_only=True)
    attachment_ref: str | None = field(default=None, kw_only=True)

    kind: ClassVar[ActivityKind] = ActivityKind.CLOCK_IN


@dataclass(frozen=True)
class ClockOutEvent(ActivityEvent):
    attachment_ref: str | None = field(default=None, kw_only=True)
    note: str | None = field(default=None, kw_only=True)

    kind: ClassVar[ActivityKind] = ActivityKind.CLOCK_OUT


@dataclass(frozen=True)
class SubPhaseEvent(ActivityEvent):
    """Mola / mesai / müşteri ziyareti başlangıç ve bitişleri."""

    sub_kind: ActivityKind = field(kw_only=True)
    location: Coordinate | None = field(default=None, kw_only=True)
    attachment_ref: str | None = field(default=None, kw_only=True)
    note: str | None = field(default=None, kw_only=True)

    def __post_init__(self):
        if self.sub_kind not in SUB_PHASE_KINDS:
            raise ValueError(f"{self.sub_kind!r} is not a sub-phase activity")

    @property
    def kind(self) -> ActivityKind:  # type: ignore[override]
        return self.sub_kind


def make_event(
    kind: ActivityKind,
    timestamp: datetime,
    seq: int,
    *,
    event_id: str | None = None,
    location: Coordinate | None = None,
    attachment_ref: str | None = None,
    note: str | None = None,
) -> ActivityEvent:
    """Düz bir kayıttan (ör. kalıcı depodan okunan satır) doğru varyantı kurar."""
    extra = {} if event_id is None else {"id": event_id}
    if kind is ActivityKind.CLOCK_IN:
        if location is None:
            raise ValueError("clock_in requires a location")
        return ClockInEvent(timestamp, seq, location=location, attachment_ref=attachment_ref, **extra)
    if kind is ActivityKind.CLOCK_OUT:
        return ClockOutEvent(timestamp, seq, attachment_ref=attachment_ref, note=note, **extra)
    return SubPhaseEvent(
        timestamp,
        seq,
        sub_kind=kind,
        location=location,
        attachment_ref=attachment_ref,
        note=note,
        **extra,
    )

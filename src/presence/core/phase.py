from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from .errors import InvalidTransition
from .events import ActivityEvent, ActivityKind

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    READY = "ready"
    WORKING = "working"
    ON_BREAK = "on_break"
    OVERTIME = "overtime"
    CLIENT_VISIT = "client_visit"
    COMPLETED = "completed"


# (mevcut durum, olay) -> yeni durum; tabloda olmayan her şey reddedilir
TRANSITIONS: dict[tuple[Phase, ActivityKind], Phase] = {
    (Phase.READY, ActivityKind.CLOCK_IN): Phase.WORKING,
    (Phase.WORKING, ActivityKind.BREAK_START): Phase.ON_BREAK,
    (Phase.WORKING, ActivityKind.OVERTIME_START): Phase.OVERTIME,
    (Phase.WORKING, ActivityKind.CLIENT_VISIT_START): Phase.CLIENT_VISIT,
    (Phase.WORKING, ActivityKind.CLOCK_OUT): Phase.COMPLETED,
    (Phase.ON_BREAK, ActivityKind.BREAK_END): Phase.WORKING,
    (Phase.OVERTIME, ActivityKind.OVERTIME_END): Phase.WORKING,
    (Phase.CLIENT_VISIT, ActivityKind.CLIENT_VISIT_END): Phase.WORKING,
}


def next_phase(current: Phase, kind: ActivityKind) -> Phase:
    try:
        return TRANSITIONS[(current, kind)]
    except KeyError:
        raise InvalidTransition(current, kind) from None


def fold(events: Iterable[ActivityEvent], strict: bool = True):
    """
    Sıralı olay listesini READY'den başlayarak katlar.

    Her uygulanan olay için (event, önceki_durum, yeni_durum) üretir.
    strict=False iken geçersiz olaylar atlanır (geç gelen bir kayıt
    eksikken projeksiyon yine de üretilebilsin diye); atlanan olay durumu
    değiştirmez.
    """
    state = Phase.READY
    for ev in events:
        try:
            new_state = next_phase(state, ev.kind)
        except InvalidTransition:
            if strict:
                raise
            logger.debug("skipping %s (%s) while %s", ev.id, ev.kind.value, state.value)
            continue
        yield ev, state, new_state
        state = new_state


def derive_phase(events: Iterable[ActivityEvent], strict: bool = True) -> Phase:
    state = Phase.READY
    for _, _, state in fold(events, strict=strict):
        pass
    return state

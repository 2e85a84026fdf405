import itertools
from datetime import datetime

import pytest
from conftest import REF, at

from presence.core.activity_log import ActivityLog
from presence.core.errors import DuplicateEvent
from presence.core.events import ActivityKind, ClockInEvent, SubPhaseEvent, make_event

K = ActivityKind


def events():
    return [
        ClockInEvent(at(9), 0, location=REF, id="a"),
        SubPhaseEvent(at(10), 1, sub_kind=K.CLIENT_VISIT_START, id="b"),
        SubPhaseEvent(at(11), 2, sub_kind=K.CLIENT_VISIT_END, id="c"),
        SubPhaseEvent(at(12), 3, sub_kind=K.BREAK_START, id="d"),
        SubPhaseEvent(at(12, 45), 4, sub_kind=K.BREAK_END, id="e"),
    ]


def test_order_is_by_timestamp_not_insertion():
    evs = events()
    expected = tuple(evs)
    for perm in itertools.permutations(evs):
        assert ActivityLog(perm).ordered() == expected


def test_equal_timestamps_resolve_by_seq():
    start = SubPhaseEvent(at(12), 5, sub_kind=K.BREAK_START, id="z")
    end = SubPhaseEvent(at(12), 6, sub_kind=K.BREAK_END, id="a")
    assert ActivityLog([end, start]).ordered() == (start, end)


def test_identical_redelivery_is_ignored():
    log = ActivityLog(events())
    again = SubPhaseEvent(at(10), 1, sub_kind=K.CLIENT_VISIT_START, id="b")
    assert log.add(again) is False
    assert len(log) == 5


def test_conflicting_duplicate_id_raises():
    log = ActivityLog(events())
    with pytest.raises(DuplicateEvent):
        log.add(SubPhaseEvent(at(10, 1), 1, sub_kind=K.CLIENT_VISIT_START, id="b"))
    assert len(log) == 5


def test_naive_timestamps_rejected():
    with pytest.raises(ValueError):
        ActivityLog([SubPhaseEvent(datetime(2026, 10, 19, 9), 0, sub_kind=K.BREAK_START)])


def test_next_seq_and_last():
    log = ActivityLog(events())
    assert log.next_seq() == 5
    assert log.last.id == "e"
    assert "c" in log
    assert ActivityLog().next_seq() == 0
    assert ActivityLog().last is None


def test_make_event_builds_variants():
    ev = make_event(K.CLOCK_IN, at(9), 0, event_id="x", location=REF, attachment_ref="selfie/1.jpg")
    assert isinstance(ev, ClockInEvent)
    assert ev.kind is K.CLOCK_IN and ev.id == "x" and ev.attachment_ref == "selfie/1.jpg"
    out = make_event(K.CLOCK_OUT, at(17), 3, note="done")
    assert out.kind is K.CLOCK_OUT and out.note == "done"
    assert make_event(K.OVERTIME_END, at(19), 4).kind is K.OVERTIME_END
    with pytest.raises(ValueError):
        make_event(K.CLOCK_IN, at(9), 0)


def test_sub_phase_event_rejects_terminal_kinds():
    with pytest.raises(ValueError):
        SubPhaseEvent(at(9), 0, sub_kind=K.CLOCK_OUT)

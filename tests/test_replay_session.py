import json

import pytest
from conftest import REF, at, north_of

from presence.core.durations import accumulate
from presence.core.phase import Phase, derive_phase
from presence.utils.geo import haversine_m
from scripts.replay_session import build_log, haversine_np, load_events, to_utc


def write_jsonl(path, rows):
    path.write_text("\n".join(json.dumps(r) for r in rows) + "\n", encoding="utf-8")


def test_to_utc_assumes_utc_for_naive():
    assert to_utc("2026-10-19T09:00:00") == at(9)
    assert to_utc("2026-10-19T16:00:00+07:00") == at(9)


def test_haversine_np_matches_scalar():
    p = north_of(REF, 250)
    d = haversine_np(REF.latitude, REF.longitude, [p.latitude], [p.longitude])
    assert d[0] == pytest.approx(haversine_m(REF, p), abs=1e-6)


def test_replay_out_of_order_export(tmp_path):
    src = tmp_path / "session.jsonl"
    write_jsonl(
        src,
        [
            {"id": "e3", "kind": "break_end", "timestamp": "2026-10-19T12:30:00Z", "seq": 2},
            {"id": "e1", "kind": "clock_in", "timestamp": "2026-10-19T09:00:00Z", "seq": 0,
             "lat": REF.latitude, "lon": REF.longitude, "attachment_ref": "selfie/in.jpg"},
            {"id": "e4", "kind": "clock_out", "timestamp": "2026-10-19T17:30:00Z", "seq": 3, "note": "ok"},
            {"id": "e2", "kind": "break_start", "timestamp": "2026-10-19T12:00:00Z", "seq": 1},
        ],
    )
    df = load_events(src)
    assert list(df["id"]) == ["e1", "e2", "e3", "e4"]

    log = build_log(df)
    assert derive_phase(log.ordered()) is Phase.COMPLETED
    d = accumulate(log.ordered(), at(9), at(20))
    assert d.as_hhmm()["working"] == "08:00"
    assert d.as_hhmm()["on_break"] == "00:30"
    assert log.ordered()[0].attachment_ref == "selfie/in.jpg"
    assert log.ordered()[-1].note == "ok"


def test_missing_required_column(tmp_path):
    src = tmp_path / "bad.csv"
    src.write_text("id,timestamp\ne1,2026-10-19T09:00:00Z\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_events(src)

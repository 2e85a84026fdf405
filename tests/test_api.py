from datetime import datetime, timedelta, timezone

import pytest
from conftest import REF, FakeClock, at, north_of
from fastapi.testclient import TestClient

from presence.api.main import create_app
from presence.core.config import Config


@pytest.fixture
def clock():
    return FakeClock(at(9))


def make_client(clock, verbose=False):
    cfg = Config(
        {
            "api": {"verbose": verbose},
            "geofence": {"name": "Kantor", "lat0": REF.latitude, "lon0": REF.longitude, "radius_m": 100},
        }
    )
    return TestClient(create_app(cfg=cfg, clock=clock))


def pos(c):
    return {"lat": c.latitude, "lon": c.longitude}


def test_health(clock):
    r = make_client(clock).get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["mode"] == "minimal"
    assert body["geofence"]["radius_m"] == 100


def test_geofence_check(clock):
    client = make_client(clock)
    r = client.post("/geofence/check", json=pos(north_of(REF, 150)))
    assert r.status_code == 200
    assert r.json()["state"] == "out_of_range"
    assert r.json()["distance_m"] == pytest.approx(150.0, abs=0.1)
    r = client.post("/geofence/check", json={"lat": 95, "lon": 0})
    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "INVALID_COORDINATE"


def test_workday_flow(clock):
    client = make_client(clock)
    r = client.post("/sessions/u1/clock-in", json={**pos(REF), "attachment_ref": "selfie/in.jpg"})
    assert r.status_code == 200
    assert r.json()["phase"] == "working"
    assert r.json()["clock_in"] == "2026-10-19T09:00:00Z"

    clock.now = at(12)
    r = client.post("/sessions/u1/activities", json={"kind": "break_start"})
    assert r.json()["phase"] == "on_break"

    clock.now = at(12, 10)
    r = client.post("/sessions/u1/clock-out", json={})
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "INVALID_TRANSITION"

    clock.now = at(12, 30)
    client.post("/sessions/u1/activities", json={"kind": "break_end"})

    clock.now = at(15)
    r = client.get("/sessions/u1")
    assert r.json()["durations"]["working"] == "05:30"
    assert r.json()["durations"]["on_break"] == "00:30"

    clock.now = at(17, 30)
    r = client.post("/sessions/u1/clock-out", json={"note": "done"})
    assert r.status_code == 200
    body = r.json()
    assert body["phase"] == "completed"
    assert body["clock_out"] == "2026-10-19T17:30:00Z"
    assert body["durations"] == {
        "working": "08:00",
        "on_break": "00:30",
        "overtime": "00:00",
        "client_visit": "00:00",
        "total": "08:30",
    }

    r = client.get("/sessions/u1")
    assert r.json()["phase"] == "ready"
    history = client.get("/sessions/u1/history").json()
    assert len(history) == 1
    assert history[0]["durations"]["total"] == "08:30"


def test_clock_in_errors(clock):
    client = make_client(clock)
    r = client.post("/sessions/u1/clock-in", json=pos(north_of(REF, 150)))
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "OUT_OF_RANGE"
    assert r.json()["detail"]["distance_m"] == pytest.approx(150.0, abs=0.1)

    r = client.post("/sessions/u1/clock-in", json={"location_error": "PermissionDenied"})
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "LOCATION_UNKNOWN"

    assert client.post("/sessions/u1/clock-in", json=pos(REF)).status_code == 200
    r = client.post("/sessions/u1/clock-in", json=pos(REF))
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "SESSION_ALREADY_ACTIVE"


def test_activity_without_session(clock):
    r = make_client(clock).post("/sessions/u9/activities", json={"kind": "overtime_start"})
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "NO_ACTIVE_SESSION"


def test_unknown_activity_kind_is_rejected(clock):
    client = make_client(clock)
    client.post("/sessions/u1/clock-in", json=pos(REF))
    r = client.post("/sessions/u1/activities", json={"kind": "clock_out"})
    assert r.status_code == 422


def test_verbose_mode_lists_events(clock):
    client = make_client(clock, verbose=True)
    client.post("/sessions/u1/clock-in", json={**pos(REF), "attachment_ref": "selfie/in.jpg"})
    clock.now = at(10)
    client.post("/sessions/u1/activities", json={"kind": "client_visit_start", "note": "PT ABC"})
    events = client.get("/sessions/u1").json()["events"]
    assert [e["kind"] for e in events] == ["clock_in", "client_visit_start"]
    assert events[0]["attachment_ref"] == "selfie/in.jpg"
    assert events[1]["note"] == "PT ABC"


def test_timestamps_are_rendered_in_utc():
    wib = timezone(timedelta(hours=7))
    clock = FakeClock(datetime(2026, 10, 19, 16, 0, tzinfo=wib))
    client = make_client(clock, verbose=True)
    body = client.post("/sessions/u1/clock-in", json=pos(REF)).json()
    assert body["clock_in"] == "2026-10-19T09:00:00Z"
    assert body["as_of"] == "2026-10-19T09:00:00Z"
    assert body["events"][0]["timestamp"] == "2026-10-19T09:00:00Z"

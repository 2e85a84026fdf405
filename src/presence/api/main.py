from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Literal

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from ..core.clock import ClockController
from ..core.config import Config, load_config
from ..core.durations import now_utc
from ..core.errors import (
    ClockError,
    DuplicateEvent,
    InvalidCoordinate,
    InvalidTransition,
    LocationReason,
    LocationUnknown,
    NoActiveSession,
    OperationInProgress,
    OutOfRange,
    SessionAlreadyActive,
    StoreError,
)
from ..core.events import ActivityEvent, ActivityKind
from ..core.geofence import GeofenceValidator, GeofenceVerdict
from ..core.ports import InMemorySessionStore, SessionStore
from ..core.session import AttendanceSession, SessionSnapshot
from ..utils.geo import Coordinate, format_coordinates

# -------------------- Pydantic şemaları --------------------

SubPhaseKind = Literal[
    "break_start",
    "break_end",
    "overtime_start",
    "overtime_end",
    "client_visit_start",
    "client_visit_end",
]


class Point(BaseModel):
    lat: float
    lon: float


class ClockInIn(BaseModel):
    lat: float | None = None
    lon: float | None = None
    # konum alınamadıysa istemci nedenini bildirir
    location_error: Literal["PermissionDenied", "Timeout", "SensorUnavailable"] | None = None
    attachment_ref: str | None = None


class ActivityIn(BaseModel):
    kind: SubPhaseKind
    lat: float | None = None
    lon: float | None = None
    attachment_ref: str | None = None
    note: str | None = None


class ClockOutIn(BaseModel):
    attachment_ref: str | None = None
    note: str | None = None


class VerdictOut(BaseModel):
    state: Literal["in_range", "out_of_range", "unknown"]
    in_range: bool
    radius_m: float
    distance_m: float | None = None
    reason: str | None = None
    location: str | None = None


class EventOut(BaseModel):
    id: str
    kind: str
    timestamp: str
    location: dict | None = None
    attachment_ref: str | None = None
    note: str | None = None


class SessionOut(BaseModel):
    user_id: str
    phase: str
    durations: dict[str, str]
    as_of: str
    session_id: str | None = None
    clock_in: str | None = None
    clock_out: str | None = None
    # verbose modda olay listesi de döner
    events: list[EventOut] | None = None


class ErrorOut(BaseModel):
    code: str
    message: str
    distance_m: float | None = Field(default=None, description="OUT_OF_RANGE için")


# -------------------- Dönüştürücüler --------------------

_STATUS: dict[type[ClockError], int] = {
    InvalidCoordinate: 422,
    LocationUnknown: 400,
    OutOfRange: 403,
    NoActiveSession: 404,
    InvalidTransition: 409,
    SessionAlreadyActive: 409,
    OperationInProgress: 409,
    DuplicateEvent: 409,
    StoreError: 502,
}


def _http_error(e: ClockError) -> HTTPException:
    status = next((code for cls, code in _STATUS.items() if isinstance(e, cls)), 500)
    detail = ErrorOut(code=e.code, message=str(e), distance_m=getattr(e, "distance_m", None))
    return HTTPException(status_code=status, detail=detail.model_dump(exclude_none=True))


def _iso(ts: datetime | None) -> str | None:
    return None if ts is None else ts.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _coord(lat: float | None, lon: float | None) -> Coordinate | None:
    if lat is None or lon is None:
        return None
    return Coordinate(lat, lon)


def _verdict_out(v: GeofenceVerdict) -> VerdictOut:
    return VerdictOut(
        state=v.state.value,
        in_range=v.in_range,
        radius_m=v.radius_m,
        distance_m=None if v.distance_m is None else round(v.distance_m, 1),
        reason=None if v.reason is None else v.reason.value,
        location=None if v.position is None else format_coordinates(v.position),
    )


def _event_out(ev: ActivityEvent) -> EventOut:
    loc = getattr(ev, "location", None)
    return EventOut(
        id=ev.id,
        kind=ev.kind.value,
        timestamp=_iso(ev.timestamp),
        location=None if loc is None else {"lat": loc.latitude, "lon": loc.longitude},
        attachment_ref=getattr(ev, "attachment_ref", None),
        note=getattr(ev, "note", None),
    )


def _session_out(snap: SessionSnapshot, events: tuple[ActivityEvent, ...] | None) -> SessionOut:
    return SessionOut(
        user_id=snap.user_id,
        phase=snap.phase.value,
        durations=snap.durations.as_hhmm(),
        as_of=_iso(snap.as_of),
        session_id=snap.session_id,
        clock_in=_iso(snap.clock_in),
        clock_out=_iso(snap.clock_out),
        events=None if events is None else [_event_out(ev) for ev in events],
    )


# -------------------- App --------------------


def create_app(
    cfg: Config | None = None,
    store: SessionStore | None = None,
    clock: Callable[[], datetime] = now_utc,
) -> FastAPI:
    cfg = cfg or load_config()
    geofence = cfg.geofence()
    controller = ClockController(GeofenceValidator(geofence), store or InMemorySessionStore(), clock=clock)

    app = FastAPI(title="Presence – Attendance Core", version="1.0")
    app.state.controller = controller

    def completed_out(session: AttendanceSession) -> SessionOut:
        snap = SessionSnapshot.of(session, session.clock_out or clock())
        return _session_out(snap, session.events if cfg.api_verbose else None)

    @app.get("/health")
    def health():
        return {
            "ok": True,
            "version": "1.0",
            "mode": "verbose" if cfg.api_verbose else "minimal",
            "geofence": {
                "name": geofence.name,
                "lat0": geofence.reference_point.latitude,
                "lon0": geofence.reference_point.longitude,
                "radius_m": geofence.radius_m,
                "debounce_sec": geofence.debounce_sec,
                "poll_interval_sec": geofence.poll_interval_sec,
            },
        }

    @app.post("/geofence/check", response_model=VerdictOut)
    def geofence_check(pt: Point):
        try:
            return _verdict_out(controller.verdict(Coordinate(pt.lat, pt.lon)))
        except ClockError as e:
            raise _http_error(e) from e

    @app.get("/sessions/{user_id}", response_model=SessionOut)
    def current_session(user_id: str):
        snap = controller.snapshot(user_id)
        session = controller.active_session(user_id)
        events = session.events if (cfg.api_verbose and session is not None) else None
        return _session_out(snap, events)

    @app.get("/sessions/{user_id}/history", response_model=list[SessionOut])
    def session_history(user_id: str):
        return [completed_out(s) for s in controller.history(user_id)]

    @app.post("/sessions/{user_id}/clock-in", response_model=SessionOut)
    async def clock_in(user_id: str, body: ClockInIn):
        try:
            position = _coord(body.lat, body.lon)
            if position is None and body.location_error is not None:
                raise LocationUnknown(LocationReason(body.location_error))
            await controller.clock_in(user_id, position, attachment_ref=body.attachment_ref)
        except ClockError as e:
            raise _http_error(e) from e
        return current_session(user_id)

    @app.post("/sessions/{user_id}/activities", response_model=SessionOut)
    async def add_activity(user_id: str, body: ActivityIn):
        try:
            await controller.append_activity(
                user_id,
                ActivityKind(body.kind),
                location=_coord(body.lat, body.lon),
                attachment_ref=body.attachment_ref,
                note=body.note,
            )
        except ClockError as e:
            raise _http_error(e) from e
        return current_session(user_id)

    @app.post("/sessions/{user_id}/clock-out", response_model=SessionOut)
    async def clock_out(user_id: str, body: ClockOutIn):
        try:
            session = await controller.clock_out(user_id, attachment_ref=body.attachment_ref, note=body.note)
        except ClockError as e:
            raise _http_error(e) from e
        return completed_out(session)

    return app


app = create_app()

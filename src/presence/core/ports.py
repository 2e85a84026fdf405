from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from ..utils.geo import Coordinate
from .errors import LocationError, LocationReason, StoreError
from .events import ActivityEvent, ClockOutEvent

if TYPE_CHECKING:
    from .durations import PhaseDurations
    from .session import AttendanceSession


# -------------------- Dış arayüzler --------------------


class PositionProvider(Protocol):
    async def get_current_position(self) -> Coordinate:
        """Konumu döndürür ya da LocationError yükseltir."""


class SessionStore(Protocol):
    async def create_session(self, session: AttendanceSession) -> str: ...

    async def append_event(self, session_id: str, event: ActivityEvent) -> None: ...

    async def finalize_session(
        self, session_id: str, clock_out: ClockOutEvent, summary: PhaseDurations
    ) -> None: ...


# -------------------- Basit gerçeklemeler --------------------


class StaticPositionProvider:
    """Sabit (veya elle değiştirilen) bir konum döndürür; None ise hata verir."""

    def __init__(self, position: Coordinate | None = None, reason: LocationReason = LocationReason.TIMEOUT):
        self.position = position
        self.reason = reason

    async def get_current_position(self) -> Coordinate:
        if self.position is None:
            raise LocationError(self.reason)
        return self.position


class InMemorySessionStore:
    """Süreç içi depo; HTTP katmanı ve testler için."""

    def __init__(self):
        self.sessions: dict[str, dict[str, Any]] = {}

    async def create_session(self, session: AttendanceSession) -> str:
        if session.id in self.sessions:
            raise StoreError(f"session {session.id} already exists")
        self.sessions[session.id] = {
            "user_id": session.user_id,
            "date": session.work_date.isoformat(),
            "clock_in": session.clock_in,
            "clock_out": None,
            "events": list(session.events),
            "summary": None,
        }
        return session.id

    def _get(self, session_id: str) -> dict[str, Any]:
        try:
            return self.sessions[session_id]
        except KeyError:
            raise StoreError(f"unknown session {session_id}") from None

    async def append_event(self, session_id: str, event: ActivityEvent) -> None:
        rec = self._get(session_id)
        if rec["clock_out"] is not None:
            raise StoreError(f"session {session_id} is finalized")
        rec["events"].append(event)

    async def finalize_session(self, session_id: str, clock_out: ClockOutEvent, summary: PhaseDurations) -> None:
        rec = self._get(session_id)
        if rec["clock_out"] is not None:
            raise StoreError(f"session {session_id} is finalized")
        rec["events"].append(clock_out)
        rec["clock_out"] = clock_out.timestamp
        rec["summary"] = summary.as_minutes()

    def events_of(self, session_id: str) -> list[ActivityEvent]:
        return list(self._get(session_id)["events"])

    def clock_out_of(self, session_id: str) -> datetime | None:
        return self._get(session_id)["clock_out"]

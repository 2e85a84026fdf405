from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TypeVar

from ..utils.geo import Coordinate
from .durations import now_utc
from .errors import (
    InvalidTransition,
    NoActiveSession,
    OperationInProgress,
    SessionAlreadyActive,
    StoreError,
)
from .events import SUB_PHASE_KINDS, ActivityEvent, ActivityKind, ClockInEvent, ClockOutEvent, SubPhaseEvent
from .geofence import GeofenceValidator, GeofenceVerdict
from .ports import SessionStore
from .session import AttendanceSession, SessionSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClockController:
    """
    Giriş/çıkış isteklerini yönetir: geofence kapısı, geçiş doğrulaması,
    kalıcı depoya yazım ve günlüğe ekleme.

    Kullanıcı başına tek aktif oturum yuvası vardır ve ona yalnızca bu sınıf
    yazar. Doğrulama hataları hiçbir şey değiştirilmeden yükseltilir; depo
    hatası (StoreError) olduğu gibi yukarı iletilir, yeniden deneme yoktur.
    """

    def __init__(
        self,
        validator: GeofenceValidator,
        store: SessionStore,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.validator = validator
        self.store = store
        self._clock = clock
        self._active: dict[str, AttendanceSession] = {}
        self._history: dict[str, list[AttendanceSession]] = defaultdict(list)
        self._in_flight: set[str] = set()

    # -------------------- Yardımcılar --------------------

    @contextmanager
    def _exclusive(self, user_id: str) -> Iterator[None]:
        # kuyruğa alma yok: ikinci istek doğrudan reddedilir (çift dokunma)
        if user_id in self._in_flight:
            raise OperationInProgress(user_id)
        self._in_flight.add(user_id)
        try:
            yield
        finally:
            self._in_flight.discard(user_id)

    def _require_active(self, user_id: str) -> AttendanceSession:
        session = self._active.get(user_id)
        if session is None:
            raise NoActiveSession(user_id)
        return session

    async def _write(self, op: Awaitable[T], what: str) -> T:
        try:
            return await op
        except StoreError:
            logger.error("store rejected %s", what)
            raise
        except Exception as e:
            logger.exception("store failed during %s", what)
            raise StoreError(e) from e

    def _retire(self, session: AttendanceSession) -> None:
        self._active.pop(session.user_id, None)
        self._history[session.user_id].insert(0, session)

    # -------------------- İşlemler --------------------

    async def clock_in(
        self, user_id: str, position: Coordinate | None, attachment_ref: str | None = None
    ) -> AttendanceSession:
        with self._exclusive(user_id):
            existing = self._active.get(user_id)
            if existing is not None:
                raise SessionAlreadyActive(existing.id)
            verdict = self.validator.require_in_range(position)

            event = ClockInEvent(self._clock(), 0, location=position, attachment_ref=attachment_ref)
            session = AttendanceSession.open(user_id, event)
            session_id = await self._write(self.store.create_session(session), "create_session")
            if session_id:
                session.id = session_id
            self._active[user_id] = session

        logger.info("user %s clocked in (session %s, %.1f m)", user_id, session.id, verdict.distance_m)
        return session

    async def append_activity(
        self,
        user_id: str,
        kind: ActivityKind,
        location: Coordinate | None = None,
        attachment_ref: str | None = None,
        note: str | None = None,
    ) -> ActivityEvent:
        with self._exclusive(user_id):
            session = self._require_active(user_id)
            if kind not in SUB_PHASE_KINDS:
                # giriş/çıkış kendi işlemleriyle yapılır
                raise InvalidTransition(session.status, kind)
            event = SubPhaseEvent(
                self._clock(),
                session.log.next_seq(),
                sub_kind=kind,
                location=location,
                attachment_ref=attachment_ref,
                note=note,
            )
            session.validate(event)
            await self._write(self.store.append_event(session.id, event), "append_event")
            new_state = session.apply(event)

        logger.info("user %s: %s -> %s", user_id, kind.value, new_state.value)
        return event

    async def clock_out(
        self, user_id: str, attachment_ref: str | None = None, note: str | None = None
    ) -> AttendanceSession:
        with self._exclusive(user_id):
            session = self._require_active(user_id)
            now = self._clock()
            event = ClockOutEvent(now, session.log.next_seq(), attachment_ref=attachment_ref, note=note)
            session.validate(event)
            summary = session.durations(now)
            await self._write(self.store.finalize_session(session.id, event, summary), "finalize_session")
            session.apply(event)
            self._retire(session)

        logger.info("user %s clocked out (session %s, total %ss)", user_id, session.id, summary.total)
        return session

    def ingest(self, user_id: str, event: ActivityEvent) -> bool:
        """Dışarıdan gelen (gecikmeli) bir olayı aktif oturumun günlüğüne birleştirir."""
        if user_id in self._in_flight:
            raise OperationInProgress(user_id)
        session = self._require_active(user_id)
        added = session.ingest(event)
        if session.completed:
            self._retire(session)
        return added

    # -------------------- Salt okunur projeksiyonlar --------------------

    def active_session(self, user_id: str) -> AttendanceSession | None:
        return self._active.get(user_id)

    def history(self, user_id: str) -> tuple[AttendanceSession, ...]:
        return tuple(self._history.get(user_id, ()))

    def snapshot(self, user_id: str, now: datetime | None = None) -> SessionSnapshot:
        now = self._clock() if now is None else now
        session = self._active.get(user_id)
        if session is None:
            return SessionSnapshot.idle(user_id, now)
        return SessionSnapshot.of(session, now)

    def verdict(self, position: Coordinate | None) -> GeofenceVerdict:
        return self.validator.evaluate(position)

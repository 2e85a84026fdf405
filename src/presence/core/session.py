from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime

from .activity_log import ActivityLog
from .durations import PhaseDurations, accumulate, effective_until
from .errors import InvalidTransition
from .events import ActivityEvent, ActivityKind, ClockInEvent
from .phase import Phase, derive_phase, fold

logger = logging.getLogger(__name__)


def _clock_out_of(events) -> datetime | None:
    for ev, _, state in fold(events, strict=False):
        if state is Phase.COMPLETED:
            return ev.timestamp
    return None


@dataclass
class AttendanceSession:
    """
    Bir çalışanın günlük giriş-çıkış kaydı.

    Durum (status) ve clock_out saklanmaz, her seferinde günlükten türetilir;
    böylece günlükle asla ayrışmaz. Tamamlanan oturum değiştirilemez.
    """

    id: str
    user_id: str
    work_date: date
    clock_in: datetime
    log: ActivityLog = field(default_factory=ActivityLog)

    @classmethod
    def open(cls, user_id: str, event: ClockInEvent, session_id: str | None = None) -> AttendanceSession:
        session = cls(
            id=session_id or uuid.uuid4().hex,
            user_id=user_id,
            work_date=event.timestamp.date(),
            clock_in=event.timestamp,
        )
        session.log.add(event)
        return session

    @property
    def events(self) -> tuple[ActivityEvent, ...]:
        return self.log.ordered()

    @property
    def status(self) -> Phase:
        return derive_phase(self.log.ordered(), strict=False)

    @property
    def completed(self) -> bool:
        return self.status is Phase.COMPLETED

    @property
    def clock_out(self) -> datetime | None:
        return _clock_out_of(self.log.ordered())

    def status_at(self, now: datetime) -> Phase:
        """`now` anındaki faz; sonrasına tarihli olaylar henüz etkili değil."""
        return derive_phase(effective_until(self.log.ordered(), now), strict=False)

    def clock_out_at(self, now: datetime) -> datetime | None:
        return _clock_out_of(effective_until(self.log.ordered(), now))

    def validate(self, event: ActivityEvent) -> Phase:
        """
        Olayın eklenebilir olduğunu doğrular ve eklendikten sonraki durumu döndürür.
        Hiçbir şeyi değiştirmez; geçersizse InvalidTransition yükseltir.
        """
        if self.completed:
            raise InvalidTransition(Phase.COMPLETED, event.kind)
        applied = [ev for ev, _, _ in fold(self.log.ordered(), strict=False)]
        candidate = sorted([*applied, event], key=ActivityEvent.sort_key)
        return derive_phase(candidate, strict=True)

    def apply(self, event: ActivityEvent) -> Phase:
        new_state = self.validate(event)
        self.log.add(event)
        return new_state

    def ingest(self, event: ActivityEvent) -> bool:
        """
        Başka bir kaynaktan (gecikmeli ağ yazımı vb.) gelen olayı birleştirir.
        Geçiş doğrulaması yapılmaz; eksik bir olay geldiğinde türetilen sonuç
        kendiliğinden tutarlı hale gelir.
        """
        if self.completed:
            raise InvalidTransition(Phase.COMPLETED, event.kind)
        if event.kind is ActivityKind.CLOCK_IN and event.id not in self.log:
            raise InvalidTransition(self.status, event.kind)
        if event.timestamp < self.clock_in:
            # girişten önce oturum yok
            raise InvalidTransition(Phase.READY, event.kind)
        added = self.log.add(event)
        if added and not any(ev is event for ev, _, _ in fold(self.log.ordered(), strict=False)):
            logger.warning("session %s: %s (%s) not applicable yet", self.id, event.id, event.kind.value)
        return added

    def durations(self, now: datetime) -> PhaseDurations:
        return accumulate(self.log.ordered(), self.clock_in, now)


@dataclass(frozen=True)
class SessionSnapshot:
    """Gösterim katmanına verilen salt okunur projeksiyon."""

    user_id: str
    phase: Phase
    durations: PhaseDurations
    as_of: datetime
    session_id: str | None = None
    clock_in: datetime | None = None
    clock_out: datetime | None = None

    @classmethod
    def of(cls, session: AttendanceSession, now: datetime) -> SessionSnapshot:
        return cls(
            user_id=session.user_id,
            phase=session.status_at(now),
            durations=session.durations(now),
            as_of=now,
            session_id=session.id,
            clock_in=session.clock_in,
            clock_out=session.clock_out_at(now),
        )

    @classmethod
    def idle(cls, user_id: str, now: datetime) -> SessionSnapshot:
        return cls(user_id=user_id, phase=Phase.READY, durations=PhaseDurations(), as_of=now)

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Generic, TypeVar

from .events import ActivityEvent, ActivityKind
from .periodic import Periodic
from .phase import Phase, fold

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_SECOND = timedelta(seconds=1)

TRACKED_PHASES = (Phase.WORKING, Phase.ON_BREAK, Phase.OVERTIME, Phase.CLIENT_VISIT)


def now_utc() -> datetime:
    return datetime.now(UTC)


def whole_seconds(ts: datetime) -> int:
    """Anı epoch'tan itibaren tam saniyeye (aşağı) indirger; tamsayı aritmetiği."""
    return (ts - _EPOCH) // _SECOND


def effective_until(events: Iterable[ActivityEvent], now: datetime) -> list[ActivityEvent]:
    """`now` anında gerçekleşmiş olaylar (tam saniye çözünürlüğünde)."""
    end = whole_seconds(now)
    return [ev for ev in events if whole_seconds(ev.timestamp) <= end]


def format_hhmm(seconds: int) -> str:
    """Saniyeyi HH:MM'ye çevirir (dakikaya aşağı yuvarlar, saat 24'ü aşabilir)."""
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    return f"{hours:02d}:{rem // 60:02d}"


@dataclass(frozen=True)
class PhaseDurations:
    working: int = 0
    on_break: int = 0
    overtime: int = 0
    client_visit: int = 0

    @property
    def total(self) -> int:
        return self.working + self.on_break + self.overtime + self.client_visit

    def get(self, phase: Phase) -> int:
        return getattr(self, phase.value)

    def as_hhmm(self) -> dict[str, str]:
        out = {p.value: format_hhmm(self.get(p)) for p in TRACKED_PHASES}
        out["total"] = format_hhmm(self.total)
        return out

    def as_minutes(self) -> dict[str, int]:
        return {p.value: self.get(p) // 60 for p in TRACKED_PHASES}


def accumulate(events: Iterable[ActivityEvent], clock_in: datetime, now: datetime) -> PhaseDurations:
    """
    Olay günlüğünü `now` anına kadar faz başına geçen süreye çevirir.

    clock_in, WORKING etiketli açık bir aralık başlatır; her olay açık aralığı
    kapatır ve geçiş tablosuna göre yenisini açar. Katlama derive_phase ile
    aynıdır (READY'den); ClockIn'den önceye düşen ve `now`dan sonraki olaylar
    sayılmaz. ClockOut son aralığı
    kapatır; aksi halde son aralık `now`a kadar sayılır. Toplam her zaman
    (clock_out veya now) - clock_in'e eşittir. Saf fonksiyon: aynı girdi,
    aynı çıktı.
    """
    start = whole_seconds(clock_in)
    end = whole_seconds(now)
    totals = dict.fromkeys(TRACKED_PHASES, 0)
    if end <= start:
        return PhaseDurations()

    # derive_phase ile aynı katlama: READY'den, aynı olaylar uygulanır
    ordered = sorted(effective_until(events, now), key=ActivityEvent.sort_key)
    current, opened_at = Phase.WORKING, start
    for ev, _, new_state in fold(ordered, strict=False):
        if ev.kind is ActivityKind.CLOCK_IN:
            # WORKING aralığı clock_in'de zaten açık
            continue
        ts = max(whole_seconds(ev.timestamp), opened_at)
        totals[current] += ts - opened_at
        current, opened_at = new_state, ts
        if current is Phase.COMPLETED:
            break

    if current is not Phase.COMPLETED:
        totals[current] += end - opened_at

    return PhaseDurations(*(totals[p] for p in TRACKED_PHASES))


T = TypeVar("T")


class DurationTicker(Generic[T]):
    """
    Süre göstergesini saniyede bir sıfırdan yeniden hesaplayan tik.

    `compute(now)` saf bir projeksiyondur (ör. ClockController.snapshot);
    sonuç `on_tick`'e verilir. Artımlı sayaç tutulmaz.
    """

    def __init__(
        self,
        compute: Callable[[datetime], T],
        on_tick: Callable[[T], None],
        period_sec: float = 1.0,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._compute = compute
        self._on_tick = on_tick
        self._clock = clock
        self._loop = Periodic(period_sec, self._tick, name="duration-ticker")

    async def _tick(self) -> None:
        snapshot = self._compute(self._clock())
        if self._loop.stopped:
            return
        self._on_tick(snapshot)

    @property
    def running(self) -> bool:
        return self._loop.running

    def start(self) -> None:
        self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()

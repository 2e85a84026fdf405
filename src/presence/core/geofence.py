from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from time import monotonic
from typing import TYPE_CHECKING

from ..utils.geo import Coordinate, haversine_m
from .errors import LocationError, LocationReason, LocationUnknown, OutOfRange
from .periodic import Periodic

if TYPE_CHECKING:
    from .ports import PositionProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeofenceConfig:
    reference_point: Coordinate
    radius_m: float
    debounce_sec: int = 0
    poll_interval_sec: float = 5.0
    name: str | None = None
    address: str | None = None

    def __post_init__(self):
        if self.radius_m < 0:
            raise ValueError("radius_m must be >= 0")
        if self.poll_interval_sec <= 0:
            raise ValueError("poll_interval_sec must be positive")


class VerdictState(str, Enum):
    IN_RANGE = "in_range"
    OUT_OF_RANGE = "out_of_range"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class GeofenceVerdict:
    state: VerdictState
    radius_m: float
    distance_m: float | None = None
    position: Coordinate | None = None
    reason: LocationReason | None = None

    @property
    def in_range(self) -> bool:
        return self.state is VerdictState.IN_RANGE

    @property
    def unknown(self) -> bool:
        return self.state is VerdictState.UNKNOWN


class GeofenceValidator:
    """Konum örneğini referans noktasına göre değerlendirir; yumuşatma yok."""

    def __init__(self, config: GeofenceConfig):
        self.config = config

    def distance_m(self, position: Coordinate) -> float:
        return haversine_m(self.config.reference_point, position)

    def evaluate(self, position: Coordinate | None, reason: LocationReason | None = None) -> GeofenceVerdict:
        if position is None:
            # konum yoksa asla "içeride" varsayılmaz
            return GeofenceVerdict(VerdictState.UNKNOWN, self.config.radius_m, reason=reason)
        d = self.distance_m(position)
        state = VerdictState.IN_RANGE if d <= self.config.radius_m else VerdictState.OUT_OF_RANGE
        return GeofenceVerdict(state, self.config.radius_m, distance_m=d, position=position)

    def require_in_range(self, position: Coordinate | None) -> GeofenceVerdict:
        verdict = self.evaluate(position)
        if verdict.unknown:
            raise LocationUnknown()
        if not verdict.in_range:
            raise OutOfRange(verdict.distance_m, verdict.radius_m)
        return verdict


class GeofenceMonitor:
    """
    Konum sağlayıcısını periyodik olarak yoklar ve her örneğin hükmünü
    `on_verdict`'e yayınlar.

    debounce_sec > 0 ise içeri/dışarı geçişi ancak yeni taraf o süre boyunca
    korunursa yayınlanır (yalnızca gösterim akışı; giriş kapısı her zaman ham
    örneği kullanır). UNKNOWN hükümleri beklemeden yayınlanır.
    stop() sonrası hiçbir geri çağırma yapılmaz.
    """

    def __init__(
        self,
        validator: GeofenceValidator,
        provider: PositionProvider,
        on_verdict: Callable[[GeofenceVerdict], None],
        poll_interval_sec: float | None = None,
        debounce_sec: int | None = None,
        clock: Callable[[], float] = monotonic,
    ):
        cfg = validator.config
        self.validator = validator
        self.provider = provider
        self.on_verdict = on_verdict
        self.debounce_sec = cfg.debounce_sec if debounce_sec is None else debounce_sec
        self._clock = clock
        self._published: GeofenceVerdict | None = None
        self._pending_since: float | None = None
        self._loop = Periodic(
            cfg.poll_interval_sec if poll_interval_sec is None else poll_interval_sec,
            self._step,
            name="geofence-monitor",
        )

    @property
    def latest(self) -> GeofenceVerdict | None:
        return self._published

    @property
    def running(self) -> bool:
        return self._loop.running

    async def sample(self) -> GeofenceVerdict:
        try:
            position = await self.provider.get_current_position()
        except LocationError as e:
            logger.warning("position unavailable: %s", e.reason.value)
            return self.validator.evaluate(None, reason=e.reason)
        return self.validator.evaluate(position)

    def _settle(self, raw: GeofenceVerdict, now_ts: float) -> GeofenceVerdict:
        prev = self._published
        if self.debounce_sec <= 0 or raw.unknown or prev is None or prev.unknown or raw.state is prev.state:
            self._pending_since = None
            return raw
        if self._pending_since is None:
            # yeni tarafa geçti; bekleme penceresi başlar
            self._pending_since = now_ts
        if now_ts - self._pending_since >= self.debounce_sec:
            self._pending_since = None
            return raw
        return prev

    def apply(self, raw: GeofenceVerdict, now_ts: float | None = None) -> GeofenceVerdict:
        now_ts = self._clock() if now_ts is None else now_ts
        verdict = self._settle(raw, now_ts)
        self._published = verdict
        self.on_verdict(verdict)
        return verdict

    async def _step(self) -> None:
        raw = await self.sample()
        if self._loop.stopped:
            return
        self.apply(raw)

    def start(self) -> None:
        self._loop.start()

    async def stop(self) -> None:
        await self._loop.stop()

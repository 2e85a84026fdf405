from __future__ import annotations

from bisect import insort
from collections.abc import Iterable, Iterator

from .errors import DuplicateEvent
from .events import ActivityEvent


class ActivityLog:
    """
    Bir oturumun yalnızca eklemeli (append-only) olay günlüğü.

    Etkin sıra ekleme sırası değil (timestamp, seq, id) anahtarıdır; böylece
    gecikmeli gelen bir ağ yazımı da aynı türetilmiş sonucu verir.
    Aynı id ile aynı içerik tekrar gelirse yok sayılır, farklı içerik gelirse
    DuplicateEvent yükseltilir.
    """

    def __init__(self, events: Iterable[ActivityEvent] = ()):
        self._by_id: dict[str, ActivityEvent] = {}
        self._ordered: list[ActivityEvent] = []
        for ev in events:
            self.add(ev)

    def add(self, event: ActivityEvent) -> bool:
        if event.timestamp.tzinfo is None:
            raise ValueError(f"event {event.id} has a naive timestamp")
        known = self._by_id.get(event.id)
        if known is not None:
            if known == event:
                return False
            raise DuplicateEvent(event.id)
        self._by_id[event.id] = event
        insort(self._ordered, event, key=ActivityEvent.sort_key)
        return True

    def ordered(self) -> tuple[ActivityEvent, ...]:
        return tuple(self._ordered)

    def next_seq(self) -> int:
        return max((ev.seq for ev in self._ordered), default=-1) + 1

    @property
    def last(self) -> ActivityEvent | None:
        return self._ordered[-1] if self._ordered else None

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._by_id

    def __iter__(self) -> Iterator[ActivityEvent]:
        return iter(tuple(self._ordered))

    def __len__(self) -> int:
        return len(self._ordered)

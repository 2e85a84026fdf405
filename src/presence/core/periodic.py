from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Periodic:
    """
    Sabit aralıkla çalışan, iptal edilebilir işbirlikçi (cooperative) döngü.

    stop() döndükten sonra adım fonksiyonu bir daha çağrılmaz. Adımlar
    tamamen yeniden hesaplama yaptığı için kaçan bir tik bir sonrakinde
    kendiliğinden düzelir.
    """

    def __init__(self, interval_sec: float, step: Callable[[], Awaitable[None]], name: str = "periodic"):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self.interval_sec = interval_sec
        self._step = step
        self._name = name
        self._task: asyncio.Task | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        if self.running:
            return
        self._stopped = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    async def _run(self) -> None:
        while not self._stopped:
            try:
                await self._step()
            except asyncio.CancelledError:
                raise
            except Exception:
                # tek bir adımın hatası döngüyü öldürmemeli
                logger.exception("%s step failed", self._name)
            await asyncio.sleep(self.interval_sec)

    async def stop(self) -> None:
        self._stopped = True
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

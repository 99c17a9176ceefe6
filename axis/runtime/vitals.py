import asyncio

from axis.backend.base import Backend
from axis.constants import VITALS_INTERVAL_MS
from axis.logging import get_logger
from axis.models import SystemStats
from axis.runtime.state import RuntimeState

_logger = get_logger(__name__)


class VitalsPoller:
    def __init__(self, state: RuntimeState, backend: Backend, interval_ms: int = VITALS_INTERVAL_MS):
        self.state = state
        self.backend = backend
        self.interval_ms = interval_ms
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if self._task is not None:
            return
        if not self.state.boot_completed:
            raise RuntimeError("Vitals polling starts only after boot completes")
        self._task = asyncio.create_task(self._loop())
        _logger.info("Vitals poller started (every %dms)", self.interval_ms)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _loop(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval_ms / 1000)

    async def tick(self) -> SystemStats | None:
        """Fetch once; on failure keep the previous sample."""
        try:
            stats = await self.backend.get_vitals()
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.warning("Vitals fetch failed, keeping last sample", exc_info=True)
            return None
        self.state.vitals = stats
        return stats

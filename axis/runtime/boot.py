import asyncio
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

from axis.backend.base import CuePlayer, SilentCuePlayer
from axis.constants import BOOT_PENDING_TIMESTAMP, CHAT_DELAY_MS, CUE_STARTUP, CUE_STEP, STEP_INTERVAL_MS
from axis.logging import get_logger
from axis.models import BOOT_STEPS, BootStatus, BootStep, RenderedStep
from axis.runtime.state import RuntimeState

_logger = get_logger(__name__)


def format_boot_time(moment: datetime) -> str:
    return moment.strftime("%H:%M:%S")


def render_boot(
    steps: Sequence[BootStep],
    cursor: int,
    completed: bool,
    boot_start: datetime,
    interval_ms: int = STEP_INTERVAL_MS,
) -> list[RenderedStep]:
    last = len(steps) - 1
    rendered = []
    for index, step in enumerate(steps):
        if index < cursor:
            status = BootStatus.OK
        elif index == cursor and not completed:
            status = BootStatus.RUNNING
        elif completed and index == last:
            status = BootStatus.OK
        else:
            status = BootStatus.PENDING

        if index <= cursor:
            ts = format_boot_time(boot_start + timedelta(milliseconds=min(index, cursor) * interval_ms))
        else:
            ts = BOOT_PENDING_TIMESTAMP
        rendered.append(RenderedStep(step=step, status=status, timestamp=ts))
    return rendered


class BootSequencer:
    """Timed walk over the boot steps.

    Each tick moves the cursor one step forward; the tick after the last step
    marks the boot complete instead and calls ``on_complete``; ``on_ready``
    fires ``chat_delay_ms`` after that.
    """

    def __init__(
        self,
        state: RuntimeState,
        steps: Sequence[BootStep] = BOOT_STEPS,
        cues: CuePlayer | None = None,
        on_complete: Callable[[], None] | None = None,
        on_ready: Callable[[], None] | None = None,
        interval_ms: int = STEP_INTERVAL_MS,
        chat_delay_ms: int = CHAT_DELAY_MS,
    ):
        self.state = state
        self.steps = tuple(steps)
        self.cues = cues or SilentCuePlayer()
        self.on_complete = on_complete
        self.on_ready = on_ready
        self.interval_ms = interval_ms
        self.chat_delay_ms = chat_delay_ms
        self.boot_start = datetime.now()
        self._task: asyncio.Task | None = None

    @property
    def cursor(self) -> int:
        return self.state.boot_cursor

    @property
    def completed(self) -> bool:
        return self.state.boot_completed

    def advance(self) -> bool:
        """One timer tick. Returns False once the boot has completed."""
        if self.state.boot_completed:
            return False
        nxt = self.state.boot_cursor + 1
        if nxt >= len(self.steps):
            self.state.boot_completed = True
            self._cue(CUE_STARTUP)
            if self.on_complete:
                self.on_complete()
            return False
        self.state.boot_cursor = nxt
        self._cue(CUE_STEP)
        return True

    def render(self) -> list[RenderedStep]:
        return render_boot(
            self.steps,
            self.state.boot_cursor,
            self.state.boot_completed,
            self.boot_start,
            self.interval_ms,
        )

    def start(self) -> None:
        if self._task is not None:
            return
        self.boot_start = datetime.now()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def wait(self) -> None:
        if self._task:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        interval = self.interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            if not self.advance():
                break
        _logger.info("Boot sequence completed (%d steps)", len(self.steps))
        await asyncio.sleep(self.chat_delay_ms / 1000)
        if self.on_ready:
            self.on_ready()

    def _cue(self, cue: str) -> None:
        try:
            self.cues.play(cue)
        except Exception:
            _logger.warning("Cue %s failed", cue, exc_info=True)

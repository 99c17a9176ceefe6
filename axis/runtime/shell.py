import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from axis.backend.base import Backend, ConfirmGate, CuePlayer, HostWindow, IdFactory, always_confirm
from axis.channel import Channel
from axis.config import Config
from axis.logging import get_logger
from axis.models import ViewMode
from axis.runtime.boot import BootSequencer
from axis.runtime.coordinator import Composer, KeyAction, RequestCoordinator
from axis.runtime.observer import EventInjector
from axis.runtime.state import RuntimeState, new_session_id
from axis.runtime.store import SessionLogStore
from axis.runtime.view import ViewModeController
from axis.runtime.vitals import VitalsPoller

EventSource: TypeAlias = Callable[[Channel], Awaitable[None]]

_logger = get_logger(__name__)


class Shell:
    """One shell window: state plus every runtime component wired together."""

    def __init__(
        self,
        backend: Backend,
        config: Config | None = None,
        channel: Channel | None = None,
        event_source: EventSource | None = None,
        cues: CuePlayer | None = None,
        confirm: ConfirmGate = always_confirm,
        window: HostWindow | None = None,
        new_id: IdFactory = new_session_id,
    ):
        self.config = config or Config()
        self.backend = backend
        self.channel = channel or Channel()
        self.event_source = event_source
        self.window = window

        self.state = RuntimeState()
        self.store = SessionLogStore(self.state, backend, confirm=confirm, new_id=new_id)
        self.coordinator = RequestCoordinator(self.state, backend, self.store)
        self.composer = Composer(self.state)
        self.injector = EventInjector(self.state, self.channel, cues=cues)
        self.vitals = VitalsPoller(self.state, backend, interval_ms=self.config.vitals_interval_ms)
        self.view = ViewModeController(self.state)
        self.boot = BootSequencer(
            self.state,
            cues=cues,
            on_complete=self.vitals.start,
            on_ready=self.view.enter_chat,
            interval_ms=self.config.step_interval_ms,
            chat_delay_ms=self.config.chat_delay_ms,
        )

        self._tasks: set[asyncio.Task] = set()
        self._ready = asyncio.Event()
        self.view.on_chat = self._ready.set
        self._started = False

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.injector.start()
        self.boot.start()
        self._spawn(self.store.load_history())
        if self.event_source:
            self._spawn(self.event_source(self.channel))
        _logger.info("Shell started")

    async def wait_ready(self) -> None:
        await self._ready.wait()

    async def stop(self) -> None:
        if not self._started:
            return
        await self.boot.stop()
        await self.vitals.stop()
        self.injector.stop()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._started = False
        _logger.info("Shell stopped")

    async def handle_key(self, key: str, shift: bool = False) -> KeyAction:
        action = self.composer.key_down(key, shift=shift)
        if action == KeyAction.SUBMIT:
            # Input opens with the chat view
            if self.state.view_mode != ViewMode.CHAT:
                return KeyAction.NONE
            self._spawn(self.coordinator.submit())
        elif action == KeyAction.MINIMIZE and self.window is not None:
            try:
                await self.window.minimize()
            except Exception:
                _logger.warning("Window minimize failed", exc_info=True)
        return action

    async def __aenter__(self) -> "Shell":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()

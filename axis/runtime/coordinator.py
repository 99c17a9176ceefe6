import asyncio
from enum import StrEnum

from axis.backend.base import Backend
from axis.logging import get_logger
from axis.runtime.state import RuntimeState
from axis.runtime.store import SessionLogStore

_logger = get_logger(__name__)


class KeyAction(StrEnum):
    NONE = "none"
    SUBMIT = "submit"
    NEWLINE = "newline"
    MINIMIZE = "minimize"


class Composer:
    """Input buffer plus the keystroke rules for it.

    Enter submits, unless an input-method composition is running or Shift is held.
    """

    def __init__(self, state: RuntimeState):
        self.state = state
        self.composing = False

    @property
    def text(self) -> str:
        return self.state.input_buffer

    def set_text(self, text: str) -> None:
        self.state.input_buffer = text

    def compose_start(self) -> None:
        self.composing = True

    def compose_end(self) -> None:
        self.composing = False

    def key_down(self, key: str, shift: bool = False) -> KeyAction:
        if key == "Escape":
            return KeyAction.MINIMIZE
        if key != "Enter":
            return KeyAction.NONE
        if shift:
            self.state.input_buffer += "\n"
            return KeyAction.NEWLINE
        if self.composing:
            return KeyAction.NONE
        return KeyAction.SUBMIT


class RequestCoordinator:
    """Single-flight pipeline: user text -> backend ask -> history reload."""

    def __init__(self, state: RuntimeState, backend: Backend, store: SessionLogStore):
        self.state = state
        self.backend = backend
        self.store = store

    @property
    def busy(self) -> bool:
        return self.state.is_submitting

    async def submit(self, text: str | None = None) -> bool:
        """Send ``text`` (default: the input buffer). Returns False when ignored."""
        raw = self.state.input_buffer if text is None else text
        message = raw.strip()
        if not message or self.state.is_submitting:
            return False

        session_id = self.state.active_session_id
        self.state.input_buffer = ""
        self.state.is_submitting = True
        try:
            # Let the "thinking" state be observed even if the backend answers synchronously
            await asyncio.sleep(0)
            try:
                await self.backend.ask(message, session_id)
            except asyncio.CancelledError:
                raise
            except Exception:
                _logger.exception("Ask failed for session %s", session_id)
            await self.store.refresh()
        finally:
            self.state.is_submitting = False
        return True

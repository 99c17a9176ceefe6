from collections.abc import Callable

from axis.logging import get_logger
from axis.models import ViewMode
from axis.runtime.state import RuntimeState

_logger = get_logger(__name__)


class ViewModeController:
    """boot -> chat, once. There is no way back."""

    def __init__(self, state: RuntimeState, on_chat: Callable[[], None] | None = None):
        self.state = state
        self.on_chat = on_chat

    @property
    def mode(self) -> ViewMode:
        return self.state.view_mode

    def enter_chat(self) -> None:
        if self.state.view_mode == ViewMode.CHAT:
            return
        if not self.state.boot_completed:
            raise RuntimeError("Cannot enter chat before boot completes")
        self.state.view_mode = ViewMode.CHAT
        _logger.info("View mode switched to chat")
        if self.on_chat:
            self.on_chat()

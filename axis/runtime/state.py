from collections.abc import Callable
from uuid import uuid4
from typing import TypeAlias

from axis.models import InteractionLog, SystemStats, ViewMode

SessionListener: TypeAlias = Callable[[str], None]


def new_session_id() -> str:
    return str(uuid4())


class RuntimeState:
    """Mutable state shared by the runtime components of one shell window.

    ``logs`` is only ever replaced wholesale or appended to. Session changes are
    announced synchronously to listeners so subscriptions can follow the key.
    """

    def __init__(self) -> None:
        self.logs: tuple[InteractionLog, ...] = ()
        self._active_session_id = ""
        self._session_listeners: list[SessionListener] = []

        self.input_buffer = ""
        self.is_submitting = False

        self.vitals: SystemStats | None = None

        self.boot_cursor = -1
        self.boot_completed = False
        self.view_mode = ViewMode.BOOT

    @property
    def active_session_id(self) -> str:
        return self._active_session_id

    @active_session_id.setter
    def active_session_id(self, session_id: str) -> None:
        if session_id == self._active_session_id:
            return
        self._active_session_id = session_id
        for listener in list(self._session_listeners):
            listener(session_id)

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._session_listeners.append(listener)

        def remove() -> None:
            if listener in self._session_listeners:
                self._session_listeners.remove(listener)

        return remove

    def replace_logs(self, logs: list[InteractionLog]) -> None:
        self.logs = tuple(logs)

    def append_log(self, log: InteractionLog) -> None:
        self.logs = (*self.logs, log)

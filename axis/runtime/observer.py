import time
from collections.abc import Callable

from axis.backend.base import CuePlayer, SilentCuePlayer
from axis.channel import Channel, Subscription
from axis.constants import CUE_OBSERVER, OBSERVER_EVENT
from axis.logging import get_logger
from axis.models import InteractionLog
from axis.runtime.state import RuntimeState

_logger = get_logger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class EventInjector:
    """Appends backend push messages to the active session's transcript.

    Each subscription holds the session id it was created for and is replaced
    whenever the active session changes, so exactly one listener is live.
    """

    def __init__(
        self,
        state: RuntimeState,
        channel: Channel,
        cues: CuePlayer | None = None,
        clock: Callable[[], int] = _now_ms,
        event_name: str = OBSERVER_EVENT,
    ):
        self.state = state
        self.channel = channel
        self.cues = cues or SilentCuePlayer()
        self.clock = clock
        self.event_name = event_name
        self._subscription: Subscription | None = None
        self._session_id: str | None = None
        self._remove_listener: Callable[[], None] | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def start(self) -> None:
        if self._remove_listener is not None:
            return
        self._remove_listener = self.state.on_session_change(self._resubscribe)
        self._resubscribe(self.state.active_session_id)

    def stop(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self._release()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None
            self._session_id = None

    def _resubscribe(self, session_id: str) -> None:
        self._release()
        # Nothing to attribute messages to until a session exists
        if not session_id:
            return
        self._session_id = session_id
        self._subscription = self.channel.subscribe(self.event_name, lambda payload: self._inject(session_id, payload))

    def _inject(self, session_id: str, payload: str) -> None:
        self.state.append_log(InteractionLog.observer(payload, session_id=session_id, timestamp=self.clock()))
        try:
            self.cues.play(CUE_OBSERVER)
        except Exception:
            _logger.warning("Cue %s failed", CUE_OBSERVER, exc_info=True)

import asyncio
from collections.abc import Iterable

from axis.backend.base import Backend, ConfirmGate, IdFactory, always_confirm
from axis.constants import DELETE_CONFIRM_PROMPT
from axis.logging import get_logger
from axis.models import InteractionLog, SessionSummary
from axis.runtime.state import RuntimeState, new_session_id

_logger = get_logger(__name__)


def list_session_ids(logs: Iterable[InteractionLog], active_session_id: str) -> list[str]:
    """Distinct session ids in first-appearance order, active session last if it has no logs yet."""
    ids = list(dict.fromkeys(log.session_id for log in logs))
    if active_session_id and active_session_id not in ids:
        ids.append(active_session_id)
    return ids


def filter_logs(logs: Iterable[InteractionLog], session_id: str) -> list[InteractionLog]:
    return [log for log in logs if log.session_id == session_id]


class SessionLogStore:
    def __init__(
        self,
        state: RuntimeState,
        backend: Backend,
        confirm: ConfirmGate = always_confirm,
        new_id: IdFactory = new_session_id,
    ):
        self.state = state
        self.backend = backend
        self.confirm = confirm
        self.new_id = new_id
        self._reload_ticket = 0
        self._selection_pending = False

    async def load_history(self, select_session: bool = True) -> bool:
        """Replace all logs with the backend's snapshot.

        Only the most recently issued reload may apply its result; an older one
        finishing late is dropped. With ``select_session`` the active session
        moves to the newest log's session, or to a fresh id when history is empty.
        A requested selection survives until some reload applies, even one
        started later without ``select_session``.
        """
        if select_session:
            self._selection_pending = True
        self._reload_ticket += 1
        ticket = self._reload_ticket
        try:
            history = await self.backend.fetch_history()
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("Failed to load history")
            return False

        if ticket != self._reload_ticket:
            _logger.debug("Dropping stale history reload %d (latest %d)", ticket, self._reload_ticket)
            return False

        self.state.replace_logs(history)
        if self._selection_pending:
            self._selection_pending = False
            self.state.active_session_id = history[-1].session_id if history else self.new_id()
        return True

    async def refresh(self) -> bool:
        return await self.load_history(select_session=False)

    def list_sessions(self) -> list[str]:
        return list_session_ids(self.state.logs, self.state.active_session_id)

    def logs_for(self, session_id: str) -> list[InteractionLog]:
        return filter_logs(self.state.logs, session_id)

    def current_logs(self) -> list[InteractionLog]:
        return self.logs_for(self.state.active_session_id)

    def summaries(self) -> list[SessionSummary]:
        result = []
        for sid in self.list_sessions():
            logs = self.logs_for(sid)
            summary = SessionSummary(session_id=sid, log_count=len(logs))
            if logs:
                summary.last_timestamp = logs[-1].timestamp
                summary.preview = logs[0].user_text or logs[0].ai_response
            result.append(summary)
        return result

    def start_new_session(self) -> str:
        self._selection_pending = False
        self.state.active_session_id = self.new_id()
        return self.state.active_session_id

    def select_session(self, session_id: str) -> None:
        self._selection_pending = False
        self.state.active_session_id = session_id

    async def delete_session(self, session_id: str) -> bool:
        if not self.confirm(DELETE_CONFIRM_PROMPT):
            return False
        try:
            await self.backend.delete_session(session_id)
        except asyncio.CancelledError:
            raise
        except Exception:
            _logger.exception("Failed to delete session %s", session_id)
            return False

        await self.refresh()
        if session_id == self.state.active_session_id:
            self.start_new_session()
        return True

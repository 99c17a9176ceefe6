import asyncio
import itertools
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from axis.backend.local import LocalBackend, echo_responder
from axis.models import InteractionLog, SystemStats, Token
from axis.runtime.state import RuntimeState

_counter = itertools.count()


def make_log(session_id: str, text: str = "hi", response: str = "ok", log_id: str | None = None) -> InteractionLog:
    n = next(_counter)
    return InteractionLog(
        id=log_id or f"log-{n}",
        session_id=session_id,
        timestamp=1_700_000_000_000 + n,
        user_tokens=tuple(Token(id=f"{n}-{i}", text=t, timestamp=n) for i, t in enumerate(text.split())),
        ai_response=response,
        provider_used="Llama -> gpt",
    )


class FakeBackend:
    def __init__(self, history: list[InteractionLog] | None = None):
        self.history = list(history or [])
        self.ask_calls: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.fetch_count = 0
        self.vitals_count = 0
        self.ask_error: Exception | None = None
        self.fetch_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.vitals_error: Exception | None = None
        self.ask_gate: asyncio.Event | None = None
        self.stats = SystemStats(
            cpu_usage=12,
            memory_used=4 * 1024**3,
            memory_total=16 * 1024**3,
            battery_level=100,
            is_charging=True,
        )

    async def ask(self, input: str, session_id: str) -> None:
        self.ask_calls.append((input, session_id))
        if self.ask_gate is not None:
            await self.ask_gate.wait()
        if self.ask_error is not None:
            raise self.ask_error
        self.history.append(make_log(session_id, text=input, response=f"re: {input}"))

    async def fetch_history(self) -> list[InteractionLog]:
        self.fetch_count += 1
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.history)

    async def delete_session(self, session_id: str) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(session_id)
        self.history = [log for log in self.history if log.session_id != session_id]

    async def get_vitals(self) -> SystemStats:
        self.vitals_count += 1
        if self.vitals_error is not None:
            raise self.vitals_error
        return self.stats


class RecordingCues:
    def __init__(self, fail: bool = False):
        self.played: list[str] = []
        self.fail = fail

    def play(self, cue: str) -> None:
        self.played.append(cue)
        if self.fail:
            raise OSError("audio device missing")


@pytest.fixture
def state() -> RuntimeState:
    return RuntimeState()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def ids():
    """Deterministic session ids: sess-0, sess-1, ..."""
    counter = itertools.count()
    return lambda: f"sess-{next(counter)}"


@pytest_asyncio.fixture
async def local_backend(tmp_path: Path) -> AsyncGenerator[LocalBackend, None]:
    backend = LocalBackend(tmp_path / "history.db", responder=echo_responder)
    await backend.connect()
    yield backend
    await backend.close()

"""Tests for single-flight submission and keystroke gating."""

import asyncio

import pytest

from axis.errors import BackendError
from axis.runtime.coordinator import Composer, KeyAction, RequestCoordinator
from axis.runtime.state import RuntimeState
from axis.runtime.store import SessionLogStore
from tests.conftest import FakeBackend, make_log


@pytest.fixture
def coordinator(state: RuntimeState, backend: FakeBackend, ids) -> RequestCoordinator:
    store = SessionLogStore(state, backend, new_id=ids)
    state.active_session_id = "s1"
    return RequestCoordinator(state, backend, store)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_whitespace_is_ignored(self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend):
        state.input_buffer = "  "

        assert not await coordinator.submit()

        assert backend.ask_calls == []
        assert backend.fetch_count == 0
        assert state.input_buffer == "  "
        assert not state.is_submitting

    @pytest.mark.asyncio
    async def test_round_trip_reloads_history(self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend):
        state.input_buffer = "  open the pod bay doors "

        assert await coordinator.submit()

        assert backend.ask_calls == [("open the pod bay doors", "s1")]
        assert backend.fetch_count == 1
        assert [log.ai_response for log in state.logs] == ["re: open the pod bay doors"]
        assert state.input_buffer == ""
        assert not state.is_submitting

    @pytest.mark.asyncio
    async def test_post_state_follows_backend_history(self, coordinator: RequestCoordinator, state: RuntimeState):
        class TwoLogBackend(FakeBackend):
            async def ask(self, input, session_id):
                self.history += [make_log(session_id), make_log(session_id)]

        backend = TwoLogBackend()
        coordinator.backend = backend
        coordinator.store.backend = backend

        await coordinator.submit("hello")

        assert len(state.logs) == 2

    @pytest.mark.asyncio
    async def test_yields_before_asking(self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend):
        task = asyncio.create_task(coordinator.submit("ping"))
        await asyncio.sleep(0)

        assert state.is_submitting
        assert state.input_buffer == ""
        assert backend.ask_calls == []

        await task
        assert backend.ask_calls == [("ping", "s1")]

    @pytest.mark.asyncio
    async def test_second_submit_while_busy_is_noop(
        self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend
    ):
        backend.ask_gate = asyncio.Event()
        first = asyncio.create_task(coordinator.submit("first"))
        while not backend.ask_calls:
            await asyncio.sleep(0)

        state.input_buffer = "second"
        assert not await coordinator.submit()
        assert state.input_buffer == "second"
        assert coordinator.busy

        backend.ask_gate.set()
        assert await first
        assert backend.ask_calls == [("first", "s1")]
        assert not coordinator.busy

    @pytest.mark.asyncio
    async def test_backend_error_clears_busy_without_restoring_input(
        self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend
    ):
        backend.ask_error = BackendError("provider exploded", status_code=502)
        state.input_buffer = "doomed"

        assert await coordinator.submit()

        assert not state.is_submitting
        assert state.input_buffer == ""
        assert state.logs == ()

    @pytest.mark.asyncio
    async def test_reload_failure_clears_busy(self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend):
        backend.fetch_error = BackendError("history gone")

        await coordinator.submit("hi")

        assert not state.is_submitting

    @pytest.mark.asyncio
    async def test_uses_session_active_at_submit(self, coordinator: RequestCoordinator, state: RuntimeState, backend: FakeBackend):
        task = asyncio.create_task(coordinator.submit("hi"))
        await asyncio.sleep(0)
        state.active_session_id = "s2"
        await task

        assert backend.ask_calls == [("hi", "s1")]


class TestComposer:
    def test_enter_submits(self, state: RuntimeState):
        composer = Composer(state)
        assert composer.key_down("Enter") == KeyAction.SUBMIT

    def test_shift_enter_inserts_newline(self, state: RuntimeState):
        composer = Composer(state)
        composer.set_text("line one")

        assert composer.key_down("Enter", shift=True) == KeyAction.NEWLINE
        assert composer.text == "line one\n"

    def test_shift_enter_while_composing_still_newline(self, state: RuntimeState):
        composer = Composer(state)
        composer.compose_start()

        assert composer.key_down("Enter", shift=True) == KeyAction.NEWLINE

    def test_composition_suppresses_submit(self, state: RuntimeState):
        composer = Composer(state)
        composer.set_text("にほん")
        composer.compose_start()

        assert composer.key_down("Enter") == KeyAction.NONE
        assert composer.text == "にほん"

        composer.compose_end()
        assert composer.key_down("Enter") == KeyAction.SUBMIT

    def test_other_keys(self, state: RuntimeState):
        composer = Composer(state)
        assert composer.key_down("a") == KeyAction.NONE
        assert composer.key_down("Escape") == KeyAction.MINIMIZE

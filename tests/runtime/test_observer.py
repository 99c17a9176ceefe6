import asyncio

import pytest

from axis.channel import Channel
from axis.constants import OBSERVER_EVENT
from axis.runtime.observer import EventInjector
from axis.runtime.state import RuntimeState
from tests.conftest import RecordingCues, make_log


async def deliver() -> None:
    await asyncio.sleep(0)


@pytest.fixture
def channel() -> Channel:
    return Channel()


class TestEventInjector:
    @pytest.mark.asyncio
    async def test_payload_becomes_observer_log(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s1"
        injector = EventInjector(state, channel, clock=lambda: 42)
        injector.start()

        channel.emit(OBSERVER_EVENT, "hello")
        await deliver()

        assert len(state.logs) == 1
        log = state.logs[0]
        assert log.session_id == "s1"
        assert log.provider_used == "Observer"
        assert log.user_tokens == ()
        assert log.ai_response == "hello"
        assert log.timestamp == 42
        assert log.is_observer

    @pytest.mark.asyncio
    async def test_appends_after_existing_logs(self, state: RuntimeState, channel: Channel):
        state.replace_logs([make_log("s1"), make_log("s2")])
        state.active_session_id = "s2"
        injector = EventInjector(state, channel)
        injector.start()

        channel.emit(OBSERVER_EVENT, "[Error Detected] need help?")
        await deliver()

        assert [log.session_id for log in state.logs] == ["s1", "s2", "s2"]
        assert state.logs[-1].ai_response == "[Error Detected] need help?"

    @pytest.mark.asyncio
    async def test_follows_session_switches(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s1"
        injector = EventInjector(state, channel)
        injector.start()

        state.active_session_id = "s2"
        assert injector.session_id == "s2"
        assert channel.listener_count(OBSERVER_EVENT) == 1

        channel.emit(OBSERVER_EVENT, "one")
        await deliver()

        assert [log.session_id for log in state.logs] == ["s2"]

    @pytest.mark.asyncio
    async def test_attributed_to_session_active_at_delivery(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s1"
        injector = EventInjector(state, channel)
        injector.start()

        channel.emit(OBSERVER_EVENT, "late")
        state.active_session_id = "s2"
        await deliver()

        assert [log.session_id for log in state.logs] == ["s2"]

    @pytest.mark.asyncio
    async def test_no_duplicate_delivery_after_many_switches(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s0"
        injector = EventInjector(state, channel)
        injector.start()
        for i in range(1, 6):
            state.active_session_id = f"s{i}"

        channel.emit(OBSERVER_EVENT, "once")
        await deliver()

        assert channel.listener_count(OBSERVER_EVENT) == 1
        assert len(state.logs) == 1

    @pytest.mark.asyncio
    async def test_stop_releases_subscription(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s1"
        injector = EventInjector(state, channel)
        injector.start()
        injector.stop()

        assert channel.listener_count(OBSERVER_EVENT) == 0
        state.active_session_id = "s2"
        assert channel.listener_count(OBSERVER_EVENT) == 0

        channel.emit(OBSERVER_EVENT, "ignored")
        await deliver()
        assert state.logs == ()

    @pytest.mark.asyncio
    async def test_waits_for_a_session(self, state: RuntimeState, channel: Channel):
        injector = EventInjector(state, channel)
        injector.start()
        assert channel.listener_count(OBSERVER_EVENT) == 0

        state.active_session_id = "s1"
        assert channel.listener_count(OBSERVER_EVENT) == 1

    @pytest.mark.asyncio
    async def test_cue_failure_does_not_drop_message(self, state: RuntimeState, channel: Channel):
        state.active_session_id = "s1"
        cues = RecordingCues(fail=True)
        injector = EventInjector(state, channel, cues=cues)
        injector.start()

        channel.emit(OBSERVER_EVENT, "still here")
        await deliver()

        assert cues.played == ["beep"]
        assert [log.ai_response for log in state.logs] == ["still here"]

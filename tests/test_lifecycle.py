"""Tests for the bot session lifecycle."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from loguru import logger

from wxrelay.bus.events import MessageEvent
from wxrelay.channels.base import BaseTransport
from wxrelay.session.lifecycle import SessionLifecycleManager, SessionStartError, SessionState


class StubTransport(BaseTransport):
    """Transport whose start/stop/send are mocks."""

    name = "stub"

    def __init__(self):
        super().__init__()
        self.start = AsyncMock()
        self.stop = AsyncMock()
        self.send = AsyncMock()

    async def start(self):
        pass

    async def stop(self):
        pass

    async def send(self, msg):
        pass


@pytest.fixture
def log_messages():
    messages = []
    handler_id = logger.add(messages.append, format="{message}")
    yield messages
    logger.remove(handler_id)


def make_session(transport, sleep=None, history=None, brokers=None):
    brokers = brokers or Mock(stop_all=AsyncMock())
    history = history or Mock()
    return SessionLifecycleManager(
        transport,
        brokers,
        history,
        max_retries=3,
        retry_delay=5.0,
        sleep=sleep or AsyncMock(),
    )


class TestStart:
    """Start with retries."""

    @pytest.mark.asyncio
    async def test_three_failures_are_fatal(self, log_messages):
        transport = StubTransport()
        transport.start.side_effect = ConnectionError("bridge down")
        sleep = AsyncMock()
        session = make_session(transport, sleep=sleep)

        with pytest.raises(SessionStartError):
            await session.run()

        assert transport.start.await_count == 3
        assert [c.args for c in sleep.await_args_list] == [(5.0,), (5.0,)]
        attempts = [m for m in log_messages if "Failed to start bot" in m]
        assert len(attempts) == 3
        assert "(attempt 1/3)" in attempts[0]
        assert "(attempt 3/3)" in attempts[2]
        assert any("Max retries reached. Unable to start bot." in m for m in log_messages)
        assert session.state == SessionState.DISCONNECTED
        assert SessionLifecycleManager._active is None

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self):
        transport = StubTransport()
        transport.start.side_effect = [ConnectionError("down"), None]
        sleep = AsyncMock()
        session = make_session(transport, sleep=sleep)

        await session.start()

        assert transport.start.await_count == 2
        sleep.assert_awaited_once_with(5.0)
        assert session.state == SessionState.CONNECTED


class TestRun:
    """Running and shutting down a session."""

    @pytest.mark.asyncio
    async def test_shutdown_stops_drains_and_persists(self):
        transport = StubTransport()
        history = Mock()
        brokers = Mock(stop_all=AsyncMock())
        session = make_session(transport, history=history, brokers=brokers)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.01)
        assert session.state == SessionState.CONNECTED
        history.restore.assert_called_once()

        await session.shutdown()
        await asyncio.wait_for(task, timeout=1)

        transport.stop.assert_awaited_once()
        brokers.stop_all.assert_awaited_once()
        history.persist.assert_called_once()
        assert session.state == SessionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_only_one_live_session(self):
        first = make_session(StubTransport())
        second = make_session(StubTransport())

        task = asyncio.create_task(first.run())
        await asyncio.sleep(0.01)

        with pytest.raises(RuntimeError):
            await second.run()

        await first.shutdown()
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self):
        transport = StubTransport()
        session = make_session(transport)

        await session.shutdown()
        await session.shutdown()

        transport.stop.assert_awaited_once()


class TestHandlers:
    """Transport events."""

    @pytest.mark.asyncio
    async def test_message_routed_to_broker(self):
        transport = StubTransport()
        transport.bot_name = "bot"
        brokers = Mock(stop_all=AsyncMock())
        make_session(transport, brokers=brokers)

        await transport._emit("message", MessageEvent(
            sender_id="u1", sender_name="alice", text="@bot hi", room_id="r1", mentions_self=True
        ))

        routed = brokers.route_message.call_args.args[0]
        assert routed.conversation_id == "r1"
        assert routed.content == "hi"

    @pytest.mark.asyncio
    async def test_filtered_message_not_routed(self):
        transport = StubTransport()
        brokers = Mock(stop_all=AsyncMock())
        make_session(transport, brokers=brokers)

        await transport._emit("message", MessageEvent(
            sender_id="u1", sender_name="alice", text="hello", room_id="r1"
        ))

        brokers.route_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect_reconnects(self):
        transport = StubTransport()
        session = make_session(transport)
        await session.start()

        await transport._emit("disconnect")
        await asyncio.sleep(0.01)

        assert transport.start.await_count == 2
        assert session.state == SessionState.CONNECTED

    @pytest.mark.asyncio
    async def test_failed_reconnect_ends_run(self):
        transport = StubTransport()
        session = make_session(transport)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.01)

        transport.start.side_effect = ConnectionError("gone")
        await transport._emit("disconnect")

        with pytest.raises(SessionStartError):
            await asyncio.wait_for(task, timeout=1)
        transport.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_disconnect_during_shutdown_ignored(self):
        transport = StubTransport()
        session = make_session(transport)
        await session.start()
        await session.shutdown()

        await transport._emit("disconnect")
        await asyncio.sleep(0.01)

        assert transport.start.await_count == 1

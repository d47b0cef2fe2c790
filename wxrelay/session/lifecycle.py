"""Bot session lifecycle: start with retries, reconnect, orderly shutdown."""

from __future__ import annotations

import asyncio
import signal
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar

from loguru import logger

from wxrelay.broker.conversation_broker import BrokerManager
from wxrelay.bus.events import MessageEvent
from wxrelay.channels.base import BaseTransport
from wxrelay.history.store import HistoryStore


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SHUTTING_DOWN = "shutting_down"


class SessionStartError(RuntimeError):
    """The transport session could not be established after the configured number of attempts."""


class SessionLifecycleManager:
    """
    Owns the transport session for the lifetime of the process.

    Only one session may run per process at a time.
    """

    _active: ClassVar[SessionLifecycleManager | None] = None

    def __init__(
        self,
        transport: BaseTransport,
        brokers: BrokerManager,
        history: HistoryStore,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.transport = transport
        self.brokers = brokers
        self.history = history
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

        self.state = SessionState.DISCONNECTED
        self._stopped = asyncio.Event()
        self._fatal: SessionStartError | None = None
        self._tasks: set[asyncio.Task] = set()

        transport.on("scan", self._on_scan)
        transport.on("login", self._on_login)
        transport.on("logout", self._on_logout)
        transport.on("message", self._on_message)
        transport.on("disconnect", self._on_disconnect)

    async def start(self) -> None:
        """
        Connect the transport, retrying with a fixed delay.

        Raises:
            SessionStartError: If every attempt failed.
        """
        self.state = SessionState.CONNECTING
        for attempt in range(1, self.max_retries + 1):
            try:
                await self.transport.start()
            except Exception as e:
                logger.error(f"Failed to start bot (attempt {attempt}/{self.max_retries}): {e}")
                if attempt < self.max_retries:
                    logger.info(f"Retrying in {self.retry_delay} seconds...")
                    await self._sleep(self.retry_delay)
                continue

            self.state = SessionState.CONNECTED
            logger.info("Bot started")
            return

        self.state = SessionState.DISCONNECTED
        logger.error("Max retries reached. Unable to start bot.")
        raise SessionStartError(f"Unable to start bot after {self.max_retries} attempts")

    async def run(self) -> None:
        """
        Run the session until shutdown.

        Raises:
            RuntimeError: If another session is already running.
            SessionStartError: If the session could not be (re)established.
        """
        if SessionLifecycleManager._active is not None:
            raise RuntimeError("A bot session is already running in this process")
        SessionLifecycleManager._active = self

        try:
            self.history.restore()
            await self.start()
            self.install_signal_handlers()
            await self._stopped.wait()
        finally:
            self._remove_signal_handlers()
            SessionLifecycleManager._active = None

        if self._fatal is not None:
            raise self._fatal

    async def shutdown(self) -> None:
        """Stop the transport, drain the brokers and persist history."""
        if self.state == SessionState.SHUTTING_DOWN or self._stopped.is_set():
            return
        self.state = SessionState.SHUTTING_DOWN
        logger.info("Shutting down...")

        try:
            await self.transport.stop()
        except Exception as e:
            logger.warning(f"Error stopping transport: {e}")

        await self.brokers.stop_all()
        self.history.persist()

        self.state = SessionState.DISCONNECTED
        self._stopped.set()
        logger.info("Bot stopped")

    def install_signal_handlers(self) -> None:
        """Shut down on SIGINT and SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._request_shutdown)
            except (NotImplementedError, RuntimeError):
                # Not supported on Windows event loops
                logger.debug(f"Signal handler for {sig.name} not installed")

    def _remove_signal_handlers(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    def _request_shutdown(self) -> None:
        self._spawn(self.shutdown())

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _on_scan(self, status: Any, qrcode: str | None) -> None:
        logger.info(f"Scan QR Code to login: {status}")
        if qrcode:
            logger.info(f"QR code: {qrcode}")

    async def _on_login(self, user: dict[str, Any]) -> None:
        logger.info(f"User {user.get('name', '')} logged in")

    async def _on_logout(self, user: dict[str, Any]) -> None:
        logger.info(f"User {user.get('name', '')} logged out")

    async def _on_message(self, event: MessageEvent) -> None:
        msg = self.transport.normalize(event)
        if msg is None:
            return
        logger.info(f"Message from {msg.sender_name} in {msg.conversation_id}: {msg.content[:100]}")
        self.brokers.route_message(msg)

    async def _on_disconnect(self) -> None:
        if self.state == SessionState.SHUTTING_DOWN or self._stopped.is_set():
            return
        self.state = SessionState.DISCONNECTED
        logger.warning("Transport disconnected, reconnecting")
        # Reconnect outside the transport's listener task, which is ending.
        self._spawn(self._reconnect())

    async def _reconnect(self) -> None:
        try:
            await self.start()
        except SessionStartError as e:
            logger.error(f"Reconnect failed: {e}")
            self._fatal = e
            await self.shutdown()

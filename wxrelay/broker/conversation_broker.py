from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from loguru import logger

from wxrelay.bus.events import InboundMessage

MessageHandler = Callable[[InboundMessage], Awaitable[None]]


@dataclass
class QueuedMessage:
    """Message in the conversation queue with sequence number."""
    seq: int
    message: InboundMessage
    received_at: datetime = field(default_factory=datetime.now)
    processed_at: Optional[datetime] = None


class ConversationBroker:
    """
    Per-conversation message broker with FIFO guarantees.

    Each conversation has its own queue and worker, so turns of one
    conversation never overlap while different conversations proceed in
    parallel. A semaphore shared by all brokers bounds the number of turns
    in flight.
    """

    def __init__(
        self,
        conversation_id: str,
        handler: MessageHandler,
        semaphore: asyncio.Semaphore,
        max_queue_size: int = 100,
        poll_interval: float = 1.0,
    ):
        self.conversation_id = conversation_id
        self.handler = handler
        self.max_queue_size = max_queue_size
        self.poll_interval = poll_interval
        self._semaphore = semaphore

        self._queue: asyncio.Queue[QueuedMessage] = asyncio.Queue(maxsize=max_queue_size)
        self._seq_counter = 0
        self._running = False
        self._process_task: Optional[asyncio.Task] = None

        self.messages_received = 0
        self.messages_processed = 0
        self.messages_failed = 0
        self.messages_dropped = 0

    def enqueue(self, message: InboundMessage) -> bool:
        """
        Add message to the conversation queue.

        Returns:
            True if queued, False if the queue is full and the message was dropped
        """
        self._seq_counter += 1
        queued = QueuedMessage(seq=self._seq_counter, message=message)
        try:
            self._queue.put_nowait(queued)
        except asyncio.QueueFull:
            self.messages_dropped += 1
            logger.error(f"Conversation {self.conversation_id} queue full, dropping message")
            return False

        self.messages_received += 1
        logger.debug(f"Enqueued message {queued.seq} in conversation {self.conversation_id}")
        return True

    def start(self) -> None:
        """Start the broker processing loop."""
        self._running = True
        self._process_task = asyncio.create_task(self._process_loop())
        logger.debug(f"Broker started for conversation {self.conversation_id}")

    async def stop(self, timeout: float | None = 30.0) -> None:
        """Stop the broker after the message in flight (if any) finishes."""
        self._running = False
        if not self._process_task:
            return
        try:
            await asyncio.wait_for(self._process_task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Broker for {self.conversation_id} did not drain in {timeout}s, cancelled")
        except asyncio.CancelledError:
            pass

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            self.messages_dropped += dropped
            logger.warning(f"Conversation {self.conversation_id} stopped with {dropped} queued message(s), dropping")

    async def _process_loop(self) -> None:
        """Process messages one at a time in arrival order."""
        while self._running:
            try:
                queued = await asyncio.wait_for(self._queue.get(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                continue

            try:
                async with self._semaphore:
                    await self.handler(queued.message)
                self.messages_processed += 1
            except Exception as e:
                logger.error(f"Failed to process message {queued.seq} in {self.conversation_id}: {e}")
                self.messages_failed += 1
            finally:
                queued.processed_at = datetime.now()
                self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued message has been processed."""
        await self._queue.join()

    @property
    def queue_depth(self) -> int:
        """Current number of messages waiting."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        """Whether broker is active."""
        return self._running and (self._process_task is not None and not self._process_task.done())


class BrokerManager:
    """
    Routes inbound messages to per-conversation brokers.

    Brokers are created on first use of a conversation id.
    """

    def __init__(
        self,
        handler: MessageHandler,
        max_queue_size: int = 100,
        max_concurrent_turns: int = 4,
        drain_timeout: float = 30.0,
        poll_interval: float = 1.0,
    ):
        self.handler = handler
        self.max_queue_size = max_queue_size
        self.drain_timeout = drain_timeout
        self.poll_interval = poll_interval
        self._semaphore = asyncio.Semaphore(max_concurrent_turns)
        self._brokers: dict[str, ConversationBroker] = {}
        self._accepting = True

    def route_message(self, message: InboundMessage) -> bool:
        """
        Route message to its conversation broker.

        Returns:
            True if queued
        """
        if not self._accepting:
            logger.warning(f"Broker is shutting down, dropping message for {message.conversation_id}")
            return False

        broker = self._brokers.get(message.conversation_id)
        if broker is None:
            broker = ConversationBroker(
                conversation_id=message.conversation_id,
                handler=self.handler,
                semaphore=self._semaphore,
                max_queue_size=self.max_queue_size,
                poll_interval=self.poll_interval,
            )
            broker.start()
            self._brokers[message.conversation_id] = broker
            logger.info(f"Created broker for conversation {message.conversation_id}")

        return broker.enqueue(message)

    async def join(self) -> None:
        """Wait until all queued messages have been processed."""
        for broker in list(self._brokers.values()):
            await broker.join()

    async def stop_all(self) -> None:
        """Stop accepting messages and stop every broker."""
        self._accepting = False
        brokers = list(self._brokers.values())
        await asyncio.gather(*(b.stop(self.drain_timeout) for b in brokers))
        for cid, stats in self.get_stats().items():
            logger.info(
                f"Conversation {cid}: {stats['processed']} processed, "
                f"{stats['failed']} failed, {stats['dropped']} dropped"
            )
        self._brokers.clear()

    def get_stats(self) -> dict:
        """Get stats for all brokers."""
        return {
            cid: {
                "queue_depth": broker.queue_depth,
                "running": broker.is_running,
                "received": broker.messages_received,
                "processed": broker.messages_processed,
                "failed": broker.messages_failed,
                "dropped": broker.messages_dropped,
            }
            for cid, broker in self._brokers.items()
        }

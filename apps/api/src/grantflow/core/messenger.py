"""
Deferred Message Bus

Decouples request handling from slow side effects (token creation plus an
outbound email). A request dispatches an intent message and returns; the
message is handled later by a registered handler.

Transport:
- With Redis: messages are serialized to JSON and pushed onto a list. The
  ``messenger_consume`` scheduler job pops them in batches and runs the
  handlers.
- Without Redis (local development, tests): the handler is scheduled as an
  asyncio task on the running loop.

Delivery is at-least-once from the queue's point of view; handler failures are
logged and the message is dropped (no retry, no dead-letter queue).
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, ClassVar

from apscheduler.triggers.interval import IntervalTrigger
from pydantic import BaseModel, ValidationError

from grantflow.core.config import settings
from grantflow.core.redis import get_redis_client
from grantflow.core.scheduler import register_job

logger = logging.getLogger(__name__)

JOB_ID_CONSUME_MESSAGES = "messenger_consume"


class Message(BaseModel):
    """Base class for bus messages. Subclasses set a unique ``message_type``."""

    message_type: ClassVar[str]


Handler = Callable[[Any], Awaitable[None]]


class MessageBus:
    """Routes messages to handlers, through Redis when it is available."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        self._handlers: dict[str, tuple[type[Message], Handler]] = {}
        self._pending_tasks: set[asyncio.Task] = set()

    def register(self, message_cls: type[Message], handler: Handler) -> None:
        """Register the handler for a message class (one handler per type)."""
        self._handlers[message_cls.message_type] = (message_cls, handler)
        logger.debug(f"Registered handler {handler.__name__} for {message_cls.message_type}")

    def is_registered(self, message_type: str) -> bool:
        return message_type in self._handlers

    async def dispatch(self, message: Message) -> None:
        """
        Hand a message over for deferred handling.

        Never raises on handler failure; the caller receives no signal about
        what happens to the message later.
        """
        if message.message_type not in self._handlers:
            raise ValueError(f"No handler registered for message type {message.message_type}")

        client = get_redis_client()
        if client is not None:
            envelope = json.dumps(
                {"type": message.message_type, "payload": message.model_dump(mode="json")}
            )
            await client.rpush(self.queue_name, envelope)
            logger.debug(f"Queued message {message.message_type}")
            return

        task = asyncio.create_task(self.handle(message))
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def handle(self, message: Message) -> bool:
        """
        Run the handler for a message.

        Returns:
            True if the handler completed, False if it raised
        """
        _, handler = self._handlers[message.message_type]
        try:
            await handler(message)
            return True
        except Exception as e:
            logger.error(f"Handler for {message.message_type} failed: {e}", exc_info=True)
            return False

    def decode(self, raw: str) -> Message | None:
        """Rebuild a message from its queued JSON envelope."""
        try:
            envelope = json.loads(raw)
            message_cls, _ = self._handlers[envelope["type"]]
            return message_cls.model_validate(envelope["payload"])
        except (ValueError, KeyError, ValidationError) as e:
            logger.error(f"Dropping undecodable message: {e}")
            return None

    async def consume(self, max_messages: int | None = None) -> dict[str, Any]:
        """
        Pop and handle queued messages.

        Returns:
            Dict with totals of handled, failed and dropped messages
        """
        results = {"handled": 0, "failed": 0, "dropped": 0}
        client = get_redis_client()
        if client is None:
            return results

        limit = max_messages or settings.messenger_batch_size
        raw_messages = await client.lpop(self.queue_name, limit) or []

        for raw in raw_messages:
            message = self.decode(raw)
            if message is None:
                results["dropped"] += 1
                continue
            if await self.handle(message):
                results["handled"] += 1
            else:
                results["failed"] += 1

        if raw_messages:
            logger.info(
                f"Consumed {len(raw_messages)} messages. "
                f"Handled: {results['handled']}, Failed: {results['failed']}, "
                f"Dropped: {results['dropped']}"
            )
        return results

    async def drain(self) -> None:
        """Wait for in-process handler tasks (used on shutdown)."""
        if self._pending_tasks:
            await asyncio.gather(*self._pending_tasks, return_exceptions=True)


# Global bus instance
bus = MessageBus(settings.messenger_queue_name)


async def consume_messages() -> dict[str, Any]:
    """Scheduler entry point for the queue consumer."""
    return await bus.consume()


def register_messenger_jobs() -> None:
    """Register the queue consumer with the scheduler."""
    register_job(
        job_id=JOB_ID_CONSUME_MESSAGES,
        func=consume_messages,
        trigger=IntervalTrigger(seconds=settings.messenger_poll_seconds),
    )
    logger.info(
        f"Registered job: {JOB_ID_CONSUME_MESSAGES} "
        f"(interval: {settings.messenger_poll_seconds} seconds)"
    )

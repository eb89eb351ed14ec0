"""In-process event bus.

Subscribers register interest in an event type; publishing never waits
for, and never fails because of, a subscriber.
"""

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from storefront.domain.base import DomainEvent

logger = structlog.get_logger()

Handler = Callable[[DomainEvent], Awaitable[None] | None]


class EventBus:
    """Fire-and-forget publish point for domain events.

    Each delivery runs as its own asyncio task: coroutine handlers are
    awaited inside the task, plain callables are pushed to a worker
    thread. Delivery is at-most-once and errors are only logged.

    Example usage:
        bus = EventBus()
        bus.subscribe("product:created", audit_handler)
        bus.publish(ProductCreated(product_id=1, seller_id=7, shop_id=1))
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """Register a handler for an event type."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        """Remove a previously registered handler, if present."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: str) -> list[Handler]:
        """Get registered handlers for an event type."""
        return list(self._handlers.get(event_type, []))

    def publish(self, event: DomainEvent) -> None:
        """Schedule delivery of an event to its subscribers.

        Returns immediately. Never raises.

        Args:
            event: Event to deliver.
        """
        try:
            handlers = self.handlers_for(event.event_type)
            if not handlers:
                return

            loop = asyncio.get_running_loop()
            for handler in handlers:
                task = loop.create_task(self._deliver(handler, event))
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)
        except Exception:
            logger.warning(
                "Event publish failed",
                event_type=event.event_type,
                event_id=str(event.event_id),
                exc_info=True,
            )

    async def drain(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, handler: Handler, event: DomainEvent) -> None:
        try:
            if inspect.iscoroutinefunction(handler):
                await handler(event)
            else:
                await asyncio.to_thread(handler, event)
        except Exception:
            logger.warning(
                "Event subscriber failed",
                event_type=event.event_type,
                event_id=str(event.event_id),
                handler=getattr(handler, "__qualname__", repr(handler)),
                exc_info=True,
            )

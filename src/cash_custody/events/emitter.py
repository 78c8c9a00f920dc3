"""Event emitter for publishing custody chain events.

The emitter provides:
- Handler registration with type filtering
- Category-based routing
- Error isolation (handler failures don't break other handlers
  or the operation that emitted the event)
- An outbox that holds events until their transaction commits
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, TypeVar, runtime_checkable

from cash_custody.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)


@runtime_checkable
class EventHandler(Protocol):
    """Protocol for synchronous event handlers."""

    def __call__(self, event: DomainEvent) -> None:
        """Handle a domain event."""
        ...


@runtime_checkable
class AsyncEventHandler(Protocol):
    """Protocol for asynchronous event handlers."""

    async def __call__(self, event: DomainEvent) -> None:
        """Handle a domain event asynchronously."""
        ...


@dataclass
class HandlerRegistration:
    """Registration of an event handler."""

    handler: EventHandler | AsyncEventHandler
    event_types: set[str] | None  # None = all events
    categories: set[EventCategory] | None  # None = all categories
    is_async: bool


class AsyncEventEmitter:
    """Asynchronous event emitter.

    Usage:
        emitter = AsyncEventEmitter()

        async def notify_owner(event: HandoverDisputed) -> None:
            await push_notification(event)

        emitter.on(HandoverDisputed, notify_owner)
        emitter.on_sync(HandoverOpened, log_event)
        await emitter.emit(event)
    """

    def __init__(self) -> None:
        self._handlers: list[HandlerRegistration] = []

    @staticmethod
    def _type_names(event_type: type[T] | list[type[T]]) -> set[str]:
        if isinstance(event_type, list):
            return {t.__name__ for t in event_type}
        return {event_type.__name__}

    def on(
        self,
        event_type: type[T] | list[type[T]],
        handler: AsyncEventHandler,
    ) -> None:
        """Register async handler for specific event type(s)."""
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=self._type_names(event_type),
                categories=None,
                is_async=True,
            )
        )

    def on_sync(
        self,
        event_type: type[T] | list[type[T]],
        handler: EventHandler,
    ) -> None:
        """Register sync handler for specific event type(s)."""
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=self._type_names(event_type),
                categories=None,
                is_async=False,
            )
        )

    def on_category(
        self,
        category: EventCategory | list[EventCategory],
        handler: AsyncEventHandler,
    ) -> None:
        """Register async handler for event category(ies)."""
        cats = set(category) if isinstance(category, list) else {category}
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=None,
                categories=cats,
                is_async=True,
            )
        )

    def on_all(self, handler: EventHandler) -> None:
        """Register sync handler for all events."""
        self._handlers.append(
            HandlerRegistration(
                handler=handler,
                event_types=None,
                categories=None,
                is_async=False,
            )
        )

    def off(self, handler: AsyncEventHandler | EventHandler) -> None:
        """Unregister a handler."""
        self._handlers = [
            reg for reg in self._handlers if reg.handler is not handler
        ]

    async def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all matching handlers.

        Returns list of any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        event_type = event.event_type
        event_category = event.category

        tasks: list[asyncio.Task[None]] = []

        for reg in self._handlers:
            if reg.event_types and event_type not in reg.event_types:
                continue
            if reg.categories and event_category not in reg.categories:
                continue

            if reg.is_async:
                tasks.append(
                    asyncio.create_task(
                        self._call_async_handler(reg.handler, event)  # type: ignore[arg-type]
                    )
                )
            else:
                try:
                    reg.handler(event)  # type: ignore[misc]
                except Exception as e:
                    logger.exception(
                        "Handler %s failed for event %s",
                        reg.handler,
                        event_type,
                    )
                    errors.append(e)

        if tasks:
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    errors.append(result)

        return errors

    async def _call_async_handler(
        self,
        handler: AsyncEventHandler,
        event: DomainEvent,
    ) -> None:
        """Call async handler with error logging."""
        try:
            await handler(event)
        except Exception:
            logger.exception(
                "Async handler %s failed for event %s",
                handler,
                event.event_type,
            )
            raise


def log_event(event: DomainEvent) -> None:
    """Default handler: write every event to the log as JSON."""
    logger.info("%s %s", event.event_type, event.to_json())


class EventOutbox:
    """Holds events until the transaction that produced them commits.

    Services add events while they work; the caller publishes them after a
    successful commit. Nothing is emitted for work that was rolled back.

    Usage:
        outbox = EventOutbox(emitter)
        await ChainEngine(session, outbox=outbox).open_from_shift(shift_id)
        await session.commit()
        await outbox.publish()
    """

    def __init__(self, emitter: AsyncEventEmitter | None = None) -> None:
        self.emitter = emitter
        self._events: list[DomainEvent] = []

    @property
    def events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    def add(self, event: DomainEvent) -> None:
        self._events.append(event)

    def discard(self) -> None:
        self._events.clear()

    async def publish(self) -> list[Exception]:
        """Emit held events in order and clear the outbox.

        Returns handler exceptions from every emitted event.
        """
        events, self._events = self._events, []
        if self.emitter is None:
            return []

        errors: list[Exception] = []
        for event in events:
            errors.extend(await self.emitter.emit(event))
        return errors

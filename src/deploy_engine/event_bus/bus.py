"""Event Bus Implementation.

In-process fan-out of Pydantic events to any number of async handlers.

## Key Features

- **Concurrent Handlers**: All handlers of an event run concurrently
- **Error Isolation**: A failing handler never affects other handlers or the emitter
- **Fire-and-forget emission**: ``emit`` returns immediately; ``drain`` awaits
  everything still in flight
- **Registry injection**: handler classes get constructor dependencies from a
  ``ServiceRegistry``

```python
bus = EventBus()
bus.on(DeploymentStatusEvent, forward_to_chat)
await bus.emit_and_wait(DeploymentStatusEvent(deployment_id="dep_1", status="success", message="done"))
```
"""

import asyncio
import inspect
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from .core import EventEmissionError, HandlerRegistrationError

if TYPE_CHECKING:
    from deploy_engine.services.registry import ServiceRegistry

T_Event = TypeVar("T_Event", bound=BaseModel)
T_Handler = Callable[..., Any]


class EventBus:
    """Async event bus used as the engine's status broadcast channel."""

    def __init__(self, registry: "ServiceRegistry | None" = None, isolate_events: bool = False) -> None:
        """Initialize a new EventBus instance.

        Args:
            registry: Registry used to build handler classes. Optional.
            isolate_events: If True, each handler receives a deep copy of the event.
        """
        self._handlers: dict[type[BaseModel], list[T_Handler]] = {}
        self._registry = registry
        self._isolate_events = isolate_events
        self._pending: set[asyncio.Task] = set()
        logger.debug(f"EventBus initialized (isolate_events={isolate_events})")

    def on(self, event_type: type[T_Event], handler: T_Handler) -> None:
        """Register a handler for an event type.

        Raises:
            HandlerRegistrationError: If event_type is not BaseModel or handler is not callable
        """
        if not (isinstance(event_type, type) and issubclass(event_type, BaseModel)):
            raise HandlerRegistrationError(f"Event type must be a Pydantic BaseModel subclass, got: {event_type}")

        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"Registered handler for {event_type.__name__}: {handler}")

    def remove_handler(self, event_type: type[T_Event], handler: T_Handler) -> bool:
        """Remove a specific handler for an event type."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"Removed handler for {event_type.__name__}: {handler}")
            return True
        return False

    def clear_handlers(self, event_type: type[T_Event] | None = None) -> None:
        """Clear handlers for a specific event type or all events."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def get_handler_count(self, event_type: type[T_Event]) -> int:
        return len(self._handlers.get(event_type, []))

    def get_registered_events(self) -> list[type[BaseModel]]:
        return list(self._handlers.keys())

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def emit(self, event: T_Event, isolate: bool | None = None) -> None:
        """Emit an event without waiting for handlers (fire-and-forget).

        Must be called from a running event loop. The task is kept referenced
        until it finishes so it cannot be garbage collected mid-flight.
        """
        if not self._handlers.get(type(event)):
            return
        task = asyncio.create_task(self.emit_and_wait(event, isolate))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every fire-and-forget emission has completed."""
        while in_flight := [task for task in self._pending if not task.done()]:
            await asyncio.gather(*in_flight, return_exceptions=True)

    async def shutdown(self) -> None:
        """Finish pending emissions and drop all handlers."""
        await self.drain()
        self._handlers.clear()
        logger.debug("EventBus shutdown complete")

    async def emit_and_wait(self, event: T_Event, isolate: bool | None = None) -> list[Any]:
        """Emit an event and wait for all handlers to complete.

        Returns:
            List of results from all handlers (exceptions included as values)

        Raises:
            EventEmissionError: If event is not a BaseModel instance
        """
        if not isinstance(event, BaseModel):
            raise EventEmissionError(f"Event must be a BaseModel instance, got: {type(event).__name__}")

        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            logger.trace(f"No handlers registered for {event_type.__name__}")
            return []

        should_isolate = isolate if isolate is not None else self._isolate_events
        tasks = [
            self._execute_handler(handler, event.model_copy(deep=True) if should_isolate else event)
            for handler in handlers
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failed = sum(1 for r in results if isinstance(r, BaseException))
        if failed:
            logger.warning(f"Event {event_type.__name__}: {len(results) - failed} successful, {failed} failed handlers")
        return results

    async def _execute_handler(self, handler: T_Handler, event: T_Event) -> Any:
        """Run one handler, converting its failure into a returned exception."""
        try:
            if inspect.isclass(handler):
                handler = self._instantiate_handler_class(handler)
            result = handler(event)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            logger.error(f"Handler {handler} failed: {e}")
            return e

    def _instantiate_handler_class(self, handler_class: type) -> Any:
        """Instantiate a handler class, resolving annotated constructor arguments from the registry."""
        parameters = list(inspect.signature(handler_class.__init__).parameters.values())[1:]
        kwargs = {}
        for param in parameters:
            if self._registry is None or param.annotation is inspect.Parameter.empty:
                continue
            try:
                kwargs[param.name] = self._registry.get(param.annotation)
            except (KeyError, AttributeError):
                logger.trace(f"Service '{param.annotation}' not found for handler class {handler_class.__name__}")
        return handler_class(**kwargs)

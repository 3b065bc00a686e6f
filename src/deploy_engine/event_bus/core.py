"""Handler base class and errors of the event bus.

A handler is any callable taking one event. Handlers that need collaborators
subclass ``EventHandler`` and are registered as classes: the bus builds them
on every emission, resolving constructor arguments from its
``ServiceRegistry`` by type annotation.

```python
class NotifyOnFailure(EventHandler[DeploymentStatusEvent]):
    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    async def handle(self, event: DeploymentStatusEvent) -> None:
        if event.status == "failed":
            await self.notifier.send(event.message)


bus.on(DeploymentStatusEvent, NotifyOnFailure)
```
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class EventHandler[T_Event: BaseModel](ABC):
    """Class-based handler for events of type ``T_Event``."""

    @abstractmethod
    async def handle(self, event: T_Event) -> Any:
        """Handle one event; a raised error is reported in the emission results."""

    def __call__(self, event: T_Event) -> Any:
        return self.handle(event)


class EventBusError(Exception):
    """Base class for event bus errors."""


class HandlerRegistrationError(EventBusError):
    """A handler was registered for a non-model event type, or is not callable."""


class EventEmissionError(EventBusError):
    """An emitted event is not a Pydantic model instance."""

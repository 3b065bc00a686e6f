"""Event bus for decoupled, in-process fan-out.

Components publish Pydantic events; any number of handlers receive them
concurrently and a failing handler never affects the publisher. The engine
uses it as its status broadcast channel.
"""

from .bus import EventBus
from .core import EventBusError, EventEmissionError, EventHandler, HandlerRegistrationError

__all__ = [
    "EventBus",
    "EventBusError",
    "EventEmissionError",
    "EventHandler",
    "HandlerRegistrationError",
]

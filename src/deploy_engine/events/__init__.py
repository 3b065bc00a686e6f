"""Event types and handlers for the engine's status broadcast channel."""

from loguru import logger

from deploy_engine.event_bus import EventBus
from deploy_engine.events.status_handlers import StatusLogHandler
from deploy_engine.events.types import DeploymentStatusEvent

__all__ = [
    "DeploymentStatusEvent",
    "StatusLogHandler",
    "register_event_handlers",
]


def register_event_handlers(bus: EventBus) -> None:
    """Register the engine's built-in handlers on ``bus``."""
    bus.on(DeploymentStatusEvent, StatusLogHandler())
    logger.debug("Event handlers registered")

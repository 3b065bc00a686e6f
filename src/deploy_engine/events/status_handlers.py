"""Handlers reacting to status broadcasts."""

from loguru import logger

from deploy_engine.event_bus.core import EventHandler
from deploy_engine.events.types import DeploymentStatusEvent

_FAILURE_STATUSES = {"failed", "error", "rejected", "unhealthy"}


class StatusLogHandler(EventHandler[DeploymentStatusEvent]):
    """Writes every broadcast status change to the process log."""

    async def handle(self, event: DeploymentStatusEvent) -> None:
        if event.status in _FAILURE_STATUSES:
            logger.warning(f"[{event.deployment_id}] {event.status}: {event.message}")
        else:
            logger.info(f"[{event.deployment_id}] {event.status}: {event.message}")

"""Status broadcast port: best-effort fan-out of status changes."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from deploy_engine.event_bus import EventBus
from deploy_engine.events.types import DeploymentStatusEvent


class StatusBroadcaster(ABC):
    """Publishes status changes to zero or more subscribers."""

    @abstractmethod
    async def publish(self, deployment_id: str, status: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        """Publish one status change; delivery is best effort."""

    async def try_publish(self, deployment_id: str, status: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        try:
            await self.publish(deployment_id, status, message, metadata or {})
        except Exception as e:
            logger.warning("Status broadcast failed for {}: {}", deployment_id, e)


class EventBusBroadcaster(StatusBroadcaster):
    """Emits ``DeploymentStatusEvent`` on the event bus without waiting for handlers."""

    def __init__(self, bus: EventBus):
        self.bus = bus

    async def publish(self, deployment_id: str, status: str, message: str, metadata: dict[str, Any] | None = None) -> None:
        self.bus.emit(DeploymentStatusEvent(deployment_id=deployment_id, status=status, message=message, metadata=metadata or {}))

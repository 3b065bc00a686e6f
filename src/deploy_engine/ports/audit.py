"""Audit sink port: a one-way trail of every decision the engine takes."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger


class AuditSink(ABC):
    """Append-only audit trail. Never read back by the engine."""

    @abstractmethod
    async def record(
        self,
        action_type: str,
        description: str,
        context: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Append one audit entry."""

    async def try_record(
        self,
        action_type: str,
        description: str,
        context: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> None:
        """Record an entry; an unavailable sink is logged and otherwise ignored."""
        try:
            await self.record(action_type, description, context or {}, actor_id)
        except Exception as e:
            logger.warning(f"Audit sink failed for {action_type}: {e}")


class LoguruAuditSink(AuditSink):
    """Writes audit entries as ``audit``-bound loguru records.

    A dedicated sink can select them with ``filter=lambda r: "audit" in r["extra"]``.
    """

    async def record(
        self,
        action_type: str,
        description: str,
        context: dict[str, Any] | None = None,
        actor_id: str | None = None,
    ) -> None:
        logger.bind(audit=True, action_type=action_type, actor_id=actor_id, context=context or {}).info(
            f"AUDIT {action_type}: {description}"
        )

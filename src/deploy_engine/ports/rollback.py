"""Rollback operation port: physically restores a snapshot."""

from abc import ABC, abstractmethod

from loguru import logger

from deploy_engine.models.records import Snapshot
from deploy_engine.ports.sandbox import CommandSandbox

DEFAULT_RESTORE_COMMANDS = ['echo "Restoring {environment} to {source_revision}"']


class RollbackOperation(ABC):
    """Restores an environment to a snapshot; raises with a descriptive message on failure."""

    @abstractmethod
    async def restore(self, snapshot: Snapshot) -> None:
        """Restore ``snapshot``."""


class SandboxRollbackOperation(RollbackOperation):
    """Runs templated restore commands through the command sandbox.

    Templates may use ``{environment}``, ``{source_revision}``, ``{snapshot_id}``
    and ``{database_backup_handle}``.
    """

    def __init__(self, sandbox: CommandSandbox, commands: list[str] | None = None, timeout: float = 600.0):
        self.sandbox = sandbox
        self.commands = commands or DEFAULT_RESTORE_COMMANDS
        self.timeout = timeout

    def render(self, snapshot: Snapshot) -> list[str]:
        values = {
            "environment": snapshot.environment,
            "source_revision": snapshot.source_revision,
            "snapshot_id": snapshot.id,
            "database_backup_handle": snapshot.database_backup_handle or "",
        }
        return [command.format(**values) for command in self.commands]

    async def restore(self, snapshot: Snapshot) -> None:
        logger.info(f"Restoring {snapshot.environment} to snapshot {snapshot.id}")
        outcome = await self.sandbox.run(self.render(snapshot), self.timeout)
        if not outcome.success:
            raise RuntimeError(outcome.error or "Restore commands failed")

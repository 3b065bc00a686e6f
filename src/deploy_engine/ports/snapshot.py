"""Snapshot capture port."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

import arrow
from pydantic import BaseModel, Field

from deploy_engine.models.pipeline import PipelineConfig


class CapturedState(BaseModel):
    """Opaque handle describing a captured system state."""

    source_revision: str
    config_files: list[str] = Field(default_factory=list)
    database_backup_handle: str | None = None


class SnapshotCapture(ABC):
    """Captures the state of an environment before a deployment."""

    @abstractmethod
    async def capture(self, environment: str, config: PipelineConfig) -> CapturedState:
        """Capture the current state of ``environment``."""


def default_revision(config: PipelineConfig) -> str:
    return f"{config.branch_name}@{arrow.utcnow().format('YYYYMMDDHHmmss')}"


class WorkspaceSnapshotCapture(SnapshotCapture):
    """Enumerates configuration files under a workspace root.

    The source revision comes from ``revision_resolver`` (branch name plus a
    UTC timestamp when none is given).
    """

    def __init__(
        self,
        root: str | Path,
        patterns: list[str],
        revision_resolver: Callable[[PipelineConfig], str] | None = None,
    ):
        self.root = Path(root)
        self.patterns = patterns
        self.revision_resolver = revision_resolver or default_revision

    def enumerate_config_files(self) -> list[str]:
        found: set[str] = set()
        for pattern in self.patterns:
            for path in self.root.glob(pattern):
                if path.is_file():
                    found.add(path.relative_to(self.root).as_posix())
        return sorted(found)

    async def capture(self, environment: str, config: PipelineConfig) -> CapturedState:
        config_files = await asyncio.to_thread(self.enumerate_config_files)
        return CapturedState(source_revision=self.revision_resolver(config), config_files=config_files)

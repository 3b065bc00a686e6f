"""Natural-language explanation port."""

from abc import ABC, abstractmethod

from deploy_engine.models.records import Snapshot


class ExplanationGenerator(ABC):
    """Produces a human-readable rationale for rolling back to a snapshot."""

    @abstractmethod
    async def explain(self, snapshot: Snapshot, reason: str) -> str:
        """Explain why ``snapshot`` is a suitable target for ``reason``."""

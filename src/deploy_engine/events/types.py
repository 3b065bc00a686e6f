"""Event type definitions published on the engine's event bus."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from deploy_engine.utils import utcnow


class DeploymentStatusEvent(BaseModel):
    """A deployment or test execution changed status.

    ``deployment_id`` carries the id of whatever is being tracked; test
    executions publish under their execution id.
    """

    deployment_id: str
    status: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    published_at: datetime = Field(default_factory=utcnow)

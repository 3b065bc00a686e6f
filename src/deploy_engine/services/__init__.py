"""Record services, the service registry and the engine composition root.

``deploy_engine.services.engine`` is imported explicitly by its users since it
depends on every component package.
"""

from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.services.registry import ServiceRegistry
from deploy_engine.services.snapshot_service import SnapshotService

__all__ = ["DeploymentService", "ServiceRegistry", "SnapshotService"]

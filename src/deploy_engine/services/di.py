"""Dependency injection setup module.

Registers the components of one engine in that engine's service registry so
the API layer and event handler classes can resolve them by type.
"""

from typing import TYPE_CHECKING

from loguru import logger

from deploy_engine.approval import ApprovalGate
from deploy_engine.deployment import DeploymentTrigger
from deploy_engine.event_bus import EventBus
from deploy_engine.monitoring import DeploymentMonitor
from deploy_engine.pipeline import PipelineConfigGenerator, PipelineRunner
from deploy_engine.ports import AuditSink, StatusBroadcaster
from deploy_engine.rollback import RollbackController
from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.services.registry import ServiceRegistry
from deploy_engine.services.snapshot_service import SnapshotService
from deploy_engine.settings import Settings
from deploy_engine.suites import TestScheduler

if TYPE_CHECKING:
    from deploy_engine.services.engine import DeploymentEngine


def register_core_services(registry: ServiceRegistry, engine: "DeploymentEngine") -> None:
    """Register settings, ports and record services.

    Args:
        registry: Service registry instance to register services in
        engine: The engine whose components are registered
    """
    logger.debug("Registering core services in DI container")

    registry.register_singleton(Settings, engine.settings)
    registry.register_singleton(EventBus, engine.bus)
    registry.register_singleton(AuditSink, engine.audit)
    registry.register_singleton(StatusBroadcaster, engine.broadcaster)
    registry.register_singleton(SnapshotService, engine.snapshots)
    registry.register_singleton(DeploymentService, engine.deployments)


def register_app_services(registry: ServiceRegistry, engine: "DeploymentEngine") -> None:
    """Register the deployment components.

    Args:
        registry: Service registry instance to register services in
        engine: The engine whose components are registered
    """
    logger.debug("Registering application services in DI container")

    registry.register_singleton(PipelineConfigGenerator, engine.generator)
    registry.register_singleton(PipelineRunner, engine.runner)
    registry.register_singleton(DeploymentMonitor, engine.monitor)
    registry.register_singleton(TestScheduler, engine.scheduler)
    registry.register_singleton(ApprovalGate, engine.gate)
    registry.register_singleton(DeploymentTrigger, engine.trigger)
    registry.register_singleton(RollbackController, engine.rollbacks)


def register_all_services(registry: ServiceRegistry, engine: "DeploymentEngine") -> None:
    """Register both core and application services."""
    register_core_services(registry, engine)
    register_app_services(registry, engine)

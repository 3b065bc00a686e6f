"""Composition root.

``build_engine`` wires every component from ``Settings``. Any port can be
overridden, which is how tests inject deterministic fakes.
"""

from dataclasses import dataclass, field

from loguru import logger

from deploy_engine.approval import ApprovalGate
from deploy_engine.deployment import DeploymentTrigger
from deploy_engine.event_bus import EventBus
from deploy_engine.events import register_event_handlers
from deploy_engine.monitoring import DeploymentMonitor
from deploy_engine.pipeline import PipelineConfigGenerator, PipelineRunner, StageExecutor
from deploy_engine.ports import (
    AuditSink,
    CommandSandbox,
    EventBusBroadcaster,
    ExplanationGenerator,
    HealthProbe,
    HttpHealthProbe,
    LoguruAuditSink,
    RollbackOperation,
    SandboxRollbackOperation,
    ShellSandbox,
    SnapshotCapture,
    StatusBroadcaster,
    WorkspaceSnapshotCapture,
)
from deploy_engine.rollback import IntegrityVerifier, RollbackController, TemplateExplanationGenerator
from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.services.di import register_all_services
from deploy_engine.services.registry import ServiceRegistry
from deploy_engine.services.snapshot_service import SnapshotService
from deploy_engine.settings import Settings, get_settings
from deploy_engine.store import RecordStores, create_record_stores
from deploy_engine.suites import SuiteRunner, TestScheduler


@dataclass
class DeploymentEngine:
    """All components of one engine instance."""

    settings: Settings
    stores: RecordStores
    bus: EventBus
    audit: AuditSink
    broadcaster: StatusBroadcaster
    sandbox: CommandSandbox
    probe: HealthProbe
    snapshots: SnapshotService
    deployments: DeploymentService
    generator: PipelineConfigGenerator
    runner: PipelineRunner
    monitor: DeploymentMonitor
    scheduler: TestScheduler
    gate: ApprovalGate
    trigger: DeploymentTrigger
    rollbacks: RollbackController
    registry: ServiceRegistry = field(default_factory=ServiceRegistry)

    async def shutdown(self) -> None:
        """Stop background work and release held resources."""
        await self.monitor.shutdown()
        await self.bus.shutdown()
        await self.probe.aclose()
        self.stores.close()
        logger.info("Deployment engine shut down")


def build_engine(
    settings: Settings | None = None,
    *,
    stores: RecordStores | None = None,
    sandbox: CommandSandbox | None = None,
    probe: HealthProbe | None = None,
    capture: SnapshotCapture | None = None,
    audit: AuditSink | None = None,
    broadcaster: StatusBroadcaster | None = None,
    rollback_operation: RollbackOperation | None = None,
    explainer: ExplanationGenerator | None = None,
) -> DeploymentEngine:
    """Build a fully wired engine."""
    settings = settings or get_settings()
    stores = stores or create_record_stores(settings)
    registry = ServiceRegistry()
    bus = EventBus(registry=registry)
    register_event_handlers(bus)

    audit = audit or LoguruAuditSink()
    broadcaster = broadcaster or EventBusBroadcaster(bus)
    sandbox = sandbox or ShellSandbox(working_directory=settings.workspace_root)
    probe = probe or HttpHealthProbe()
    capture = capture or WorkspaceSnapshotCapture(settings.workspace_root, settings.config_file_patterns)
    rollback_operation = rollback_operation or SandboxRollbackOperation(
        sandbox, settings.rollback_commands, settings.rollback_timeout_seconds
    )

    snapshots = SnapshotService(stores.snapshots, audit, stores.rollbacks)
    deployments = DeploymentService(stores.deployments)
    generator = PipelineConfigGenerator(audit, settings.default_environment)
    runner = PipelineRunner(StageExecutor(sandbox), deployments, snapshots, capture, audit)
    monitor = DeploymentMonitor(probe, broadcaster, settings)
    scheduler = TestScheduler(SuiteRunner(sandbox), stores.test_executions, broadcaster, audit, settings.test_history_limit)
    gate = ApprovalGate(stores.approvals, audit, settings.approval_retention_seconds)
    trigger = DeploymentTrigger(generator, runner, monitor, gate, deployments, broadcaster, audit, settings)
    rollbacks = RollbackController(
        stores.rollbacks,
        snapshots,
        deployments,
        rollback_operation,
        IntegrityVerifier(probe, settings),
        explainer or TemplateExplanationGenerator(),
        broadcaster,
        audit,
        settings.rollback_retention_seconds,
    )

    engine = DeploymentEngine(
        settings=settings,
        stores=stores,
        bus=bus,
        audit=audit,
        broadcaster=broadcaster,
        sandbox=sandbox,
        probe=probe,
        snapshots=snapshots,
        deployments=deployments,
        generator=generator,
        runner=runner,
        monitor=monitor,
        scheduler=scheduler,
        gate=gate,
        trigger=trigger,
        rollbacks=rollbacks,
        registry=registry,
    )
    register_all_services(registry, engine)
    logger.debug("Deployment engine built")
    return engine

"""Rollback Controller.

Request lifecycle::

    requested -> pending_approval -> approved -> executing -> completed | failed
                                  \\-> rejected

Every rollback waits for a human approval; there is no unattended path.
A failed rollback is never retried automatically. It carries an error
analysis and recovery options, and a new request has to be initiated.
"""

import arrow
from loguru import logger

from deploy_engine.approval import can_approve, can_request
from deploy_engine.exceptions import AuthorizationError, InvalidTransitionError, UnverifiedSnapshotError
from deploy_engine.models import (
    Actor,
    IntegrityReport,
    RollbackOption,
    RollbackRequest,
    RollbackResult,
    RollbackStatus,
    SecurityAlert,
    Snapshot,
)
from deploy_engine.ports.audit import AuditSink
from deploy_engine.ports.broadcast import StatusBroadcaster
from deploy_engine.ports.explanation import ExplanationGenerator
from deploy_engine.ports.rollback import RollbackOperation
from deploy_engine.rollback.analysis import categorize_error, recovery_options
from deploy_engine.rollback.integrity import IntegrityVerifier
from deploy_engine.rollback.narrative import describe_candidate
from deploy_engine.services.deployment_service import DeploymentService
from deploy_engine.services.snapshot_service import SnapshotService
from deploy_engine.store import RecordStore, newest_first
from deploy_engine.utils import describe_age, utcnow

ROLLBACK_TRANSITIONS: dict[RollbackStatus, frozenset[RollbackStatus]] = {
    RollbackStatus.REQUESTED: frozenset({RollbackStatus.PENDING_APPROVAL}),
    RollbackStatus.PENDING_APPROVAL: frozenset({RollbackStatus.APPROVED, RollbackStatus.REJECTED}),
    RollbackStatus.APPROVED: frozenset({RollbackStatus.EXECUTING}),
    RollbackStatus.EXECUTING: frozenset({RollbackStatus.COMPLETED, RollbackStatus.FAILED}),
    RollbackStatus.COMPLETED: frozenset(),
    RollbackStatus.FAILED: frozenset(),
    RollbackStatus.REJECTED: frozenset(),
}

_PAST_APPROVAL = {RollbackStatus.APPROVED, RollbackStatus.EXECUTING, RollbackStatus.COMPLETED, RollbackStatus.FAILED}
_FINISHED = {RollbackStatus.COMPLETED, RollbackStatus.FAILED, RollbackStatus.REJECTED}

SUCCESS_MESSAGE = "Rollback completed successfully. System integrity verified."


class RollbackController:
    """Drives human-confirmed rollbacks to verified snapshots."""

    def __init__(
        self,
        store: RecordStore[RollbackRequest],
        snapshots: SnapshotService,
        deployments: DeploymentService,
        operation: RollbackOperation,
        verifier: IntegrityVerifier,
        explainer: ExplanationGenerator,
        broadcaster: StatusBroadcaster,
        audit: AuditSink,
        retention_seconds: float = 86400.0,
    ):
        self.store = store
        self.snapshots = snapshots
        self.deployments = deployments
        self.operation = operation
        self.verifier = verifier
        self.explainer = explainer
        self.broadcaster = broadcaster
        self.audit = audit
        self.retention_seconds = retention_seconds

    async def list_candidates(self, environment: str, limit: int = 5) -> list[RollbackOption]:
        """Verified snapshots of ``environment``, newest first."""
        now = utcnow()
        options = []
        for snapshot in await self.snapshots.list_verified(environment, limit):
            options.append(
                RollbackOption(
                    snapshot=snapshot,
                    description=describe_candidate(snapshot, now),
                    age_description=describe_age(snapshot.created_at, now),
                    reasoning=await self._explain(snapshot, f"Rollback option for {snapshot.source_revision}"),
                )
            )
        return options

    async def initiate(self, snapshot_id: str, reason: str, actor: Actor) -> RollbackRequest:
        """Open a rollback request; it always waits for approval.

        Raises:
            SnapshotNotFoundError: If the snapshot id is unknown
            UnverifiedSnapshotError: If the snapshot has not been verified
            AuthorizationError: If the actor may not deploy to the snapshot's environment
        """
        snapshot = await self.snapshots.require(snapshot_id)
        if not snapshot.verified:
            logger.warning(f"Rollback to unverified snapshot {snapshot_id} refused")
            raise UnverifiedSnapshotError(snapshot_id)
        if not can_request(actor.role, snapshot.environment):
            raise AuthorizationError(actor.role, "request rollbacks", snapshot.environment)

        request = RollbackRequest(
            environment=snapshot.environment,
            snapshot_id=snapshot_id,
            reason=reason,
            requested_by=actor.id,
            explanation=await self._explain(snapshot, reason),
        )
        await self.prune_finished()
        await self.store.create(request)
        request = await self._transition(request.id, RollbackStatus.PENDING_APPROVAL)
        logger.info(f"Rollback {request.id} of {request.environment} to {snapshot_id} awaiting approval")

        await self.audit.try_record(
            "rollback_requested",
            f"Rollback requested for {request.environment} environment",
            {"request_id": request.id, "snapshot_id": snapshot_id, "reason": reason, "requires_approval": True},
            actor.id,
        )
        await self.broadcaster.try_publish(
            request.id, RollbackStatus.PENDING_APPROVAL, f"Rollback of {request.environment} awaiting approval", {"snapshot_id": snapshot_id}
        )
        return request

    async def approve(self, request_id: str, approver: Actor) -> RollbackRequest:
        """Approve a pending request. Approving an already approved request is a no-op."""
        async with self.store.lock(request_id):
            request = await self.store.require(request_id)
            if request.status in _PAST_APPROVAL:
                return request
            if not can_approve(approver.role, request.environment):
                raise AuthorizationError(approver.role, "approve rollbacks", request.environment)
            request = await self._transition_locked(
                request, RollbackStatus.APPROVED, approved_by=approver.id, approved_at=utcnow()
            )

        logger.info(f"Rollback {request_id} approved by {approver.id}")
        await self.audit.try_record(
            "rollback_approved",
            "Rollback request approved",
            {"request_id": request_id, "environment": request.environment, "approved_by": approver.id},
            approver.id,
        )
        await self.broadcaster.try_publish(request_id, RollbackStatus.APPROVED, "Rollback approved")
        return request

    async def reject(self, request_id: str, approver: Actor, reason: str) -> RollbackRequest:
        """Reject a pending request. Rejecting twice is a no-op."""
        async with self.store.lock(request_id):
            request = await self.store.require(request_id)
            if request.status == RollbackStatus.REJECTED:
                return request
            if not can_approve(approver.role, request.environment):
                raise AuthorizationError(approver.role, "reject rollbacks", request.environment)
            request = await self._transition_locked(
                request, RollbackStatus.REJECTED, rejected_by=approver.id, rejection_reason=reason, completed_at=utcnow()
            )

        logger.warning(f"Rollback {request_id} rejected by {approver.id}: {reason}")
        await self.audit.try_record(
            "rollback_rejected",
            "Rollback request rejected",
            {"request_id": request_id, "environment": request.environment, "reason": reason},
            approver.id,
        )
        await self.broadcaster.try_publish(request_id, RollbackStatus.REJECTED, f"Rollback rejected: {reason}")
        return request

    async def execute(self, request_id: str, executor: Actor) -> RollbackResult:
        """Restore the approved snapshot and verify the environment.

        Raises:
            AuthorizationError: If the executor may not approve rollbacks of the environment
            InvalidTransitionError: If the request is not approved
        """
        request = await self.store.require(request_id)
        if not can_approve(executor.role, request.environment):
            raise AuthorizationError(executor.role, "execute rollbacks", request.environment)
        request = await self._transition(request_id, RollbackStatus.EXECUTING, executed_by=executor.id)
        logger.info(f"Rollback {request_id} executing by {executor.id}")
        await self.broadcaster.try_publish(request_id, RollbackStatus.EXECUTING, f"Rolling back {request.environment}")
        snapshot = await self.snapshots.require(request.snapshot_id)

        try:
            await self.operation.restore(snapshot)
        except Exception as e:
            logger.error(f"Rollback {request_id} restore failed: {e}")
            return await self._fail(request, str(e) or type(e).__name__)

        integrity = await self.verifier.verify(snapshot)
        if not integrity.verified:
            return await self._fail(request, f"Integrity verification failed: {', '.join(integrity.failed_checks)}", integrity)

        deployment = await self.deployments.record_rollback(snapshot, request_id, executor.id)
        result = RollbackResult(
            request_id=request_id, success=True, message=SUCCESS_MESSAGE, deployment_id=deployment.id, integrity=integrity
        )
        await self._transition(request_id, RollbackStatus.COMPLETED, completed_at=utcnow(), result=result)
        logger.info(f"Rollback {request_id} completed for {request.environment}")

        await self.audit.try_record(
            "rollback_completed",
            "Rollback executed successfully",
            {
                "request_id": request_id,
                "environment": request.environment,
                "integrity_verified": integrity.verified,
                "checks_passed": integrity.passed_count,
                "deployment_id": deployment.id,
            },
            executor.id,
        )
        await self.broadcaster.try_publish(request_id, RollbackStatus.COMPLETED, SUCCESS_MESSAGE, {"deployment_id": deployment.id})
        return result

    async def get_request(self, request_id: str) -> RollbackRequest | None:
        return await self.store.get(request_id)

    async def history(self, environment: str | None = None) -> list[RollbackRequest]:
        """Rollback requests, newest first."""
        filters = {"environment": environment} if environment else {}
        return newest_first(await self.store.list(**filters))

    async def handle_security_alert(self, alert: SecurityAlert, actor: Actor) -> RollbackRequest | None:
        """Open a rollback request for an alert that suggests one.

        Targets the latest verified snapshot of the alert's environment. The
        request still needs approval before anything is restored.
        """
        if not alert.rollback_suggested:
            return None

        snapshot = await self.snapshots.latest_verified(alert.environment)
        if snapshot is None:
            logger.warning(f"Security alert {alert.id} suggests rollback but {alert.environment} has no verified snapshot")
            return None

        logger.warning(f"Security alert {alert.id} ({alert.severity}) suggests rollback of {alert.environment}")
        return await self.initiate(snapshot.id, f"Security alert: {alert.title}", actor)

    async def prune_finished(self) -> int:
        """Delete finished requests older than the retention period."""
        cutoff = arrow.utcnow().shift(seconds=-self.retention_seconds).datetime
        removed = 0
        for request in await self.store.list():
            if request.status in _FINISHED and request.completed_at and request.completed_at < cutoff:
                await self.store.delete(request.id)
                removed += 1
        if removed:
            logger.debug(f"Pruned {removed} finished rollback requests")
        return removed

    async def _fail(self, request: RollbackRequest, error: str, integrity: IntegrityReport | None = None) -> RollbackResult:
        analysis = categorize_error(error)
        result = RollbackResult(
            request_id=request.id,
            success=False,
            message=f"Rollback failed. {analysis.summary} Alternative recovery options available.",
            integrity=integrity,
            error_analysis=analysis,
            recovery_options=recovery_options(analysis.category),
        )
        await self._transition(request.id, RollbackStatus.FAILED, completed_at=utcnow(), result=result)

        await self.audit.try_record(
            "rollback_failed",
            "Rollback execution failed with detailed analysis",
            {
                "request_id": request.id,
                "error": error,
                "error_category": analysis.category,
                "severity": analysis.severity,
                "root_cause": analysis.root_cause,
                "affected_components": analysis.affected_components,
            },
            request.executed_by,
        )
        await self.broadcaster.try_publish(request.id, RollbackStatus.FAILED, result.message, {"error_category": analysis.category})
        return result

    async def _explain(self, snapshot: Snapshot, reason: str) -> str:
        try:
            return await self.explainer.explain(snapshot, reason)
        except Exception as e:
            logger.warning(f"Explanation generation failed for snapshot {snapshot.id}: {e}")
            return f"Rollback to {snapshot.source_revision} requested: {reason}"

    async def _transition(self, request_id: str, target: RollbackStatus, **changes) -> RollbackRequest:
        async with self.store.lock(request_id):
            request = await self.store.require(request_id)
            return await self._transition_locked(request, target, **changes)

    async def _transition_locked(self, request: RollbackRequest, target: RollbackStatus, **changes) -> RollbackRequest:
        current = RollbackStatus(request.status)
        if target not in ROLLBACK_TRANSITIONS[current]:
            raise InvalidTransitionError("RollbackRequest", current, target)
        request = request.model_copy(update={"status": target, **changes})
        await self.store.update(request)
        return request

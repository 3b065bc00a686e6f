"""Ports to the engine's external collaborators and their default implementations."""

from deploy_engine.ports.audit import AuditSink, LoguruAuditSink
from deploy_engine.ports.broadcast import EventBusBroadcaster, StatusBroadcaster
from deploy_engine.ports.explanation import ExplanationGenerator
from deploy_engine.ports.health import HealthProbe, HttpHealthProbe, ProbeOutcome
from deploy_engine.ports.rollback import RollbackOperation, SandboxRollbackOperation
from deploy_engine.ports.sandbox import CommandOutcome, CommandSandbox, ProgressCallback, ShellSandbox
from deploy_engine.ports.snapshot import CapturedState, SnapshotCapture, WorkspaceSnapshotCapture

__all__ = [
    "AuditSink",
    "CapturedState",
    "CommandOutcome",
    "CommandSandbox",
    "EventBusBroadcaster",
    "ExplanationGenerator",
    "HealthProbe",
    "HttpHealthProbe",
    "LoguruAuditSink",
    "ProbeOutcome",
    "ProgressCallback",
    "RollbackOperation",
    "SandboxRollbackOperation",
    "ShellSandbox",
    "SnapshotCapture",
    "StatusBroadcaster",
    "WorkspaceSnapshotCapture",
]

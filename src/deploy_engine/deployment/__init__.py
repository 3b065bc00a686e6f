"""Deployment Trigger: the user-initiated deployment entry point."""

from deploy_engine.deployment.trigger import APPROVAL_PENDING_MESSAGE, DeploymentTrigger

__all__ = ["APPROVAL_PENDING_MESSAGE", "DeploymentTrigger"]

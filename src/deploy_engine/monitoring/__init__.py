"""Deployment Monitor: live sessions, build logs, metrics and health checks."""

from deploy_engine.monitoring.monitor import DeploymentMonitor
from deploy_engine.monitoring.subscription import StatusSubscription

__all__ = ["DeploymentMonitor", "StatusSubscription"]

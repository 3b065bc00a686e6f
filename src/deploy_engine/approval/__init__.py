"""Approval Gate: environment policy and pending approval requests."""

from deploy_engine.approval.gate import ApprovalGate
from deploy_engine.approval.policy import (
    APPROVER_ROLES,
    REQUESTER_ROLES,
    approvable_environments,
    can_approve,
    can_request,
    environment_catalogue,
    requires_approval,
)

__all__ = [
    "APPROVER_ROLES",
    "REQUESTER_ROLES",
    "ApprovalGate",
    "approvable_environments",
    "can_approve",
    "can_request",
    "environment_catalogue",
    "requires_approval",
]

"""Static approval policy tables.

Roles are compared as plain strings; a role that appears in no table is
never allowed to request, approve or skip approval.
"""

from deploy_engine.constants import ENV_DEVELOPMENT, ENV_PRODUCTION, ENV_STAGING
from deploy_engine.models import EnvironmentInfo, Role

APPROVER_ROLES: dict[str, frozenset[str]] = {
    ENV_DEVELOPMENT: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER}),
    ENV_STAGING: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER}),
    ENV_PRODUCTION: frozenset({Role.ADMIN}),
}

REQUESTER_ROLES: dict[str, frozenset[str]] = {
    ENV_DEVELOPMENT: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER, Role.DEVELOPER}),
    ENV_STAGING: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER, Role.DEVELOPER}),
    ENV_PRODUCTION: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER, Role.DEVELOPER}),
}

# Roles that deploy without a second-party sign-off, per environment.
# Environments missing here never require approval.
APPROVAL_EXEMPT_ROLES: dict[str, frozenset[str]] = {
    ENV_STAGING: frozenset({Role.ADMIN, Role.LEAD_DEVELOPER}),
    ENV_PRODUCTION: frozenset({Role.ADMIN}),
}

ENVIRONMENT_DESCRIPTIONS: dict[str, str] = {
    ENV_DEVELOPMENT: "Development environment for testing new features",
    ENV_STAGING: "Staging environment for pre-production testing",
    ENV_PRODUCTION: "Production environment serving live users",
}


def requires_approval(environment: str, role: str) -> bool:
    """Whether a deployment by ``role`` to ``environment`` must wait for approval."""
    exempt = APPROVAL_EXEMPT_ROLES.get(environment)
    if exempt is None:
        return False
    return role not in exempt


def can_approve(role: str, environment: str) -> bool:
    return role in APPROVER_ROLES.get(environment, frozenset())


def can_request(role: str, environment: str) -> bool:
    return role in REQUESTER_ROLES.get(environment, frozenset())


def approvable_environments(role: str) -> list[str]:
    return [environment for environment, roles in APPROVER_ROLES.items() if role in roles]


def environment_catalogue(role: str) -> list[EnvironmentInfo]:
    """Describe every known environment from the point of view of ``role``."""
    return [
        EnvironmentInfo(
            name=environment,
            description=description,
            requires_approval=requires_approval(environment, role),
            can_deploy=can_request(role, environment),
        )
        for environment, description in ENVIRONMENT_DESCRIPTIONS.items()
    ]

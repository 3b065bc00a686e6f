"""API dependencies for FastAPI endpoints."""

from collections.abc import Callable
from typing import TypeVar

from fastapi import Header, Request

from deploy_engine.models import Actor, Role

T = TypeVar("T")


def component[T](component_type: type[T]) -> Callable[[Request], T]:
    """FastAPI dependency that provides an engine component by type.

    Args:
        component_type: The type of component to retrieve from the engine's registry

    Returns:
        A callable that returns the requested component instance

    Example:
        ```python
        @router.get("/endpoint")
        async def endpoint(trigger: DeploymentTrigger = Depends(component(DeploymentTrigger))):
            return await trigger.deployment_history()
        ```
    """

    def get_component(request: Request) -> T:
        return request.app.state.engine.registry.get(component_type)

    return get_component


def current_actor(
    x_actor_id: str = Header(default="anonymous"),
    x_actor_role: str = Header(default=Role.VIEWER),
) -> Actor:
    """The calling actor as supplied by the identity provider's headers."""
    return Actor(id=x_actor_id, role=x_actor_role.lower())

"""Service registry for dependency injection."""

from collections.abc import Callable
from typing import Any, TypeVar, cast

T = TypeVar("T")
ServiceFactory = Callable[[], T]


class ServiceRegistry:
    """Registry of an engine's components, looked up by type.

    Each engine owns its own registry; there is no process-wide instance.
    Singletons are returned as registered, factories are called on every
    lookup.
    """

    def __init__(self):
        self._singletons: dict[type, Any] = {}
        self._factories: dict[type, ServiceFactory[Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        self._factories.pop(service_type, None)
        self._singletons[service_type] = instance

    def register_factory(self, service_type: type[T], factory: ServiceFactory[T]) -> None:
        """Register a factory building a fresh ``service_type`` per lookup."""
        self._singletons.pop(service_type, None)
        self._factories[service_type] = factory

    def get(self, service_type: type[T]) -> T:
        """Get a service instance by type.

        Raises:
            KeyError: If the requested service is not registered
        """
        if service_type in self._singletons:
            return cast(T, self._singletons[service_type])
        if service_type in self._factories:
            return cast(T, self._factories[service_type]())
        raise KeyError(f"Service {getattr(service_type, '__name__', service_type)} not registered")

    def __contains__(self, service_type: type) -> bool:
        return service_type in self._singletons or service_type in self._factories

    def registered(self) -> list[str]:
        """Names of every registered service type, sorted."""
        return sorted(service_type.__name__ for service_type in (*self._singletons, *self._factories))

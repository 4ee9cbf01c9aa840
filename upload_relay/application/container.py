"""
Dependency injection container for the relay's long-lived services.

Services are registered either as ready instances or as factories that are
invoked lazily on first resolution and cached as singletons.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from loguru import logger

T = TypeVar('T')


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when a service factory fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when factories resolve each other in a cycle."""
    pass


class IContainer(ABC):
    """Interface for dependency injection containers."""

    @abstractmethod
    def register_factory(self, service_type: Type[T], factory: Callable[['IContainer'], T]) -> None:
        """Register a factory called once with the container on first resolution."""
        pass

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """Register a specific instance."""
        pass

    @abstractmethod
    def resolve(self, service_type: Type[T]) -> T:
        """
        Resolve a service instance.

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If the factory fails
        """
        pass

    @abstractmethod
    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """Resolve a service, returning None instead of raising."""
        pass

    @abstractmethod
    def is_registered(self, service_type: Type[Any]) -> bool:
        pass

    @abstractmethod
    def get_registrations(self) -> List[Type[Any]]:
        """Registered service types, in registration order."""
        pass


class Container(IContainer):
    """Singleton-only container keyed by interface type."""

    def __init__(self) -> None:
        self._factories: Dict[Type[Any], Callable[[IContainer], Any]] = {}
        self._instances: Dict[Type[Any], Any] = {}
        self._resolution_stack: List[Type[Any]] = []

    def register_factory(self, service_type: Type[T], factory: Callable[[IContainer], T]) -> None:
        self._factories[service_type] = factory
        self._instances.pop(service_type, None)
        logger.debug(f"Registered factory for {service_type.__name__}")

    def register_instance(self, service_type: Type[T], instance: T) -> None:
        self._factories.pop(service_type, None)
        self._instances[service_type] = instance
        logger.debug(f"Registered instance for {service_type.__name__}")

    def resolve(self, service_type: Type[T]) -> T:
        if service_type in self._instances:
            return self._instances[service_type]  # type: ignore[no-any-return]

        if service_type not in self._factories:
            raise ServiceNotRegisteredException(
                f"Service {service_type.__name__} is not registered")

        if service_type in self._resolution_stack:
            cycle = " -> ".join([t.__name__ for t in self._resolution_stack] +
                                [service_type.__name__])
            raise CircularDependencyException(f"Circular dependency detected: {cycle}")

        self._resolution_stack.append(service_type)
        try:
            instance = self._factories[service_type](self)
        except (ServiceNotRegisteredException, CircularDependencyException):
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {service_type.__name__}: {e}") from e
        finally:
            self._resolution_stack.pop()

        self._instances[service_type] = instance
        return instance  # type: ignore[no-any-return]

    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        try:
            return self.resolve(service_type)
        except (ServiceNotRegisteredException, ServiceResolutionException,
                CircularDependencyException):
            return None

    def is_registered(self, service_type: Type[Any]) -> bool:
        return service_type in self._instances or service_type in self._factories

    def get_registrations(self) -> List[Type[Any]]:
        seen = dict.fromkeys(list(self._factories) + list(self._instances))
        return list(seen)

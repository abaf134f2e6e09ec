"""
Dependency injection container for managing service lifecycles and dependencies.

Services are registered against an interface type and resolved either as a
shared singleton or as a fresh transient instance. Constructor parameters
annotated with registered types are injected automatically.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union, get_type_hints

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLifetime(Enum):
    """Service lifetime management options."""
    SINGLETON = auto()  # One shared instance
    TRANSIENT = auto()  # New instance per resolution


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when service resolution fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when circular dependencies are detected."""
    pass


class ServiceRegistration:
    """Registration information for a service."""

    def __init__(self,
                 service_type: Type[Any],
                 implementation: Any,
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON):
        self.service_type = service_type
        self.implementation = implementation
        self.lifetime = lifetime
        self.instance: Optional[Any] = None

        # A ready-made instance is always a singleton
        if not (inspect.isclass(implementation) or callable(implementation)):
            self.instance = implementation
            self.lifetime = ServiceLifetime.SINGLETON


class IContainer(ABC):
    """Interface for dependency injection containers."""

    @abstractmethod
    def register(self,
                 service_type: Type[T],
                 implementation: Union[Type[T], Callable[[], T], T],
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        """
        Register a service with the container.

        Args:
            service_type: Interface or base type
            implementation: Implementation class, factory function, or instance
            lifetime: Service lifetime management
        """
        pass

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """Register a specific instance as a singleton."""
        pass

    @abstractmethod
    def resolve(self, service_type: Type[T]) -> T:
        """
        Resolve a service instance.

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If service cannot be resolved
        """
        pass

    @abstractmethod
    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """Resolve a service, returning None instead of raising."""
        pass

    @abstractmethod
    def is_registered(self, service_type: Type[T]) -> bool:
        pass

    @abstractmethod
    def get_registrations(self) -> Dict[Type[Any], ServiceRegistration]:
        pass


class Container(IContainer):
    """
    Lightweight dependency injection container.

    Supports constructor injection, singleton and transient lifetimes,
    and circular dependency detection.
    """

    def __init__(self) -> None:
        self._services: Dict[Type[Any], ServiceRegistration] = {}
        self._resolution_stack: List[Type[Any]] = []

    def register(self,
                 service_type: Type[T],
                 implementation: Union[Type[T], Callable[[], T], T],
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        registration = ServiceRegistration(service_type, implementation, lifetime)
        self._services[service_type] = registration
        logger.debug(
            f"Registered {service_type.__name__} with {registration.lifetime.name} lifetime")

    def register_instance(self, service_type: Type[T], instance: T) -> None:
        self._services[service_type] = ServiceRegistration(service_type, instance)
        # Instances may be callable (e.g. mocks), so store them directly
        self._services[service_type].instance = instance
        self._services[service_type].lifetime = ServiceLifetime.SINGLETON
        logger.debug(f"Registered instance of {service_type.__name__}")

    def resolve(self, service_type: Type[T]) -> T:
        if service_type in self._resolution_stack:
            cycle = " -> ".join([t.__name__ for t in self._resolution_stack] +
                                [service_type.__name__])
            raise CircularDependencyException(
                f"Circular dependency detected: {cycle}")

        if service_type not in self._services:
            raise ServiceNotRegisteredException(
                f"Service {service_type.__name__} is not registered")

        registration = self._services[service_type]

        if registration.lifetime == ServiceLifetime.SINGLETON and registration.instance is not None:
            return registration.instance  # type: ignore[no-any-return]

        self._resolution_stack.append(service_type)
        try:
            instance = self._create_instance(registration)
        except (CircularDependencyException, ServiceNotRegisteredException):
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {service_type.__name__}: {e}") from e
        finally:
            self._resolution_stack.pop()

        if registration.lifetime == ServiceLifetime.SINGLETON:
            registration.instance = instance

        return instance  # type: ignore[no-any-return]

    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        try:
            return self.resolve(service_type)
        except (ServiceNotRegisteredException, ServiceResolutionException, CircularDependencyException):
            return None

    def is_registered(self, service_type: Type[T]) -> bool:
        return service_type in self._services

    def get_registrations(self) -> Dict[Type[Any], ServiceRegistration]:
        return self._services.copy()

    def _create_instance(self, registration: ServiceRegistration) -> Any:
        implementation = registration.implementation

        if not inspect.isclass(implementation):
            return implementation()

        signature = inspect.signature(implementation.__init__)
        type_hints = get_type_hints(implementation.__init__)
        kwargs: Dict[str, Any] = {}

        for param_name, param in signature.parameters.items():
            if param_name == 'self' or param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue

            param_type = self._unwrap_optional(type_hints.get(param_name))
            optional = param.default is not inspect.Parameter.empty

            if param_type is None:
                if not optional:
                    raise ServiceResolutionException(
                        f"Cannot inject untyped parameter '{param_name}' of {implementation.__name__}")
                continue

            if optional:
                dependency = self.try_resolve(param_type) if self.is_registered(param_type) else None
                if dependency is not None:
                    kwargs[param_name] = dependency
            else:
                kwargs[param_name] = self.resolve(param_type)

        return implementation(**kwargs)

    @staticmethod
    def _unwrap_optional(param_type: Any) -> Any:
        """Return ``T`` for ``Optional[T]``, otherwise the type unchanged."""
        if getattr(param_type, '__origin__', None) is Union:
            args = [arg for arg in param_type.__args__ if arg is not type(None)]
            if len(args) == 1:
                return args[0]
        return param_type

"""
Application layer containing dependency injection and startup logic.

This layer wires the core domain to the infrastructure services and
manages the application lifecycle.
"""

from .container import Container, IContainer, ServiceLifetime
from .startup import ApplicationStartup

__all__ = [
    "Container",
    "IContainer",
    "ServiceLifetime",
    "ApplicationStartup",
]

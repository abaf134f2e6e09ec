"""
Configuration infrastructure: models and file/environment loading.
"""

from .models import (
    ApplicationConfig, ServerConfig, StorageConfig, LoggingConfig,
    EventBusConfig, PerformanceConfig
)
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "ServerConfig",
    "StorageConfig",
    "LoggingConfig",
    "EventBusConfig",
    "PerformanceConfig",
    "ConfigLoader",
]

"""
Core interfaces defining the contracts between the server's components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IConfigurable, IComponent
from .messaging import IEventBus
from .upload import ISessionStore, IChunkWriter, IFinalizer, IUploadManager

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IConfigurable",
    "IComponent",
    "IEventBus",
    "ISessionStore",
    "IChunkWriter",
    "IFinalizer",
    "IUploadManager",
]

"""
Core module containing the upload domain model and service interfaces.

Nothing in here touches the filesystem or the HTTP framework; concrete
implementations live in the infrastructure layer.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .interfaces.messaging import IEventBus
from .interfaces.upload import ISessionStore, IChunkWriter, IFinalizer, IUploadManager
from .domain.events import Event, EventPriority, UploadEvents
from .domain.session import UploadSession, UploadStatus

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IEventBus",
    "ISessionStore",
    "IChunkWriter",
    "IFinalizer",
    "IUploadManager",
    "Event",
    "EventPriority",
    "UploadEvents",
    "UploadSession",
    "UploadStatus",
]

"""
Resumable Upload - chunked, resumable file uploads over HTTP.

Clients upload a large file as byte-range chunks that may arrive out of
order or be resent after an interruption. The server assembles them in a
partial file and promotes it to the final artifact on completion.
"""

__version__ = "0.1.0"

# Public API exports
from .core.domain.exceptions import UploadError
from .core.domain.ranges import ByteRangeSet, ContentRange
from .core.domain.session import UploadSession, UploadStatus
from .core.interfaces.lifecycle import IHealthCheckable, IStartable, IStoppable
from .core.interfaces.messaging import IEventBus
from .core.interfaces.upload import IChunkWriter, IFinalizer, ISessionStore, IUploadManager
from .application.container import Container, IContainer

__all__ = [
    "UploadError",
    "ByteRangeSet",
    "ContentRange",
    "UploadSession",
    "UploadStatus",
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IEventBus",
    "ISessionStore",
    "IChunkWriter",
    "IFinalizer",
    "IUploadManager",
    "Container",
    "IContainer",
]

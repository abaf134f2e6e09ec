"""
Upload services: session store, chunk writer, finalizer and the manager
that combines them.
"""

from .store import SessionStore
from .writer import ChunkWriter
from .finalizer import Finalizer
from .manager import UploadManager

__all__ = [
    "SessionStore",
    "ChunkWriter",
    "Finalizer",
    "UploadManager",
]

"""
Infrastructure layer: configuration, logging and the filesystem-backed
upload services.
"""

from .logging.setup import LoggingManager
from .services.upload.manager import UploadManager

__all__ = [
    "LoggingManager",
    "UploadManager",
]

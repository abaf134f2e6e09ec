"""
Configuration models and data structures.

This module defines the configuration models used throughout the application,
providing defaults and validation for configuration values.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

VALID_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

# Session records live next to the upload files
SIDECAR_SUFFIX = ".json"


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class StorageConfig:
    """Upload storage configuration."""
    upload_directory: str = "uploads"
    partial_suffix: str = ".part"
    final_suffix: str = ".mp4"
    default_content_type: str = "application/octet-stream"
    require_complete_coverage: bool = True
    persist_sessions: bool = True
    session_ttl_hours: float = 24.0
    cleanup_interval: float = 3600.0


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_directory: str = "logs"
    max_file_size: str = "10MB"
    backup_count: int = 5
    console_enabled: bool = True
    file_enabled: bool = True


@dataclass
class EventBusConfig:
    """Event bus configuration."""
    enabled: bool = True
    max_workers: int = 2
    queue_size: int = 1000


@dataclass
class PerformanceConfig:
    """Request timing configuration."""
    enabled: bool = True
    slow_request_threshold: float = 1.0


@dataclass
class ApplicationConfig:
    """Main application configuration."""

    name: str = "Resumable Upload"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    events: EventBusConfig = field(default_factory=EventBusConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)

    config_file_path: str = ""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: On the first invalid value found
        """
        if not (1 <= self.server.port <= 65535):
            raise ValueError(
                f"Server port must be between 1 and 65535, got {self.server.port}")

        storage = self.storage
        if not storage.upload_directory:
            raise ValueError("Upload directory cannot be empty")
        if not storage.partial_suffix or not storage.final_suffix:
            raise ValueError("Partial and final suffixes cannot be empty")
        if storage.partial_suffix == storage.final_suffix:
            raise ValueError(
                f"Partial and final suffixes must differ, both are {storage.partial_suffix!r}")
        if SIDECAR_SUFFIX in (storage.partial_suffix, storage.final_suffix):
            raise ValueError(f"Suffix {SIDECAR_SUFFIX!r} is reserved for session records")
        if storage.session_ttl_hours < 0:
            raise ValueError(
                f"Session TTL must be non-negative, got {storage.session_ttl_hours}")
        if storage.cleanup_interval < 0:
            raise ValueError(
                f"Cleanup interval must be non-negative, got {storage.cleanup_interval}")

        if self.logging.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.logging.level}")

        if self.events.max_workers < 1:
            raise ValueError(
                f"Event bus needs at least one worker, got {self.events.max_workers}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApplicationConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'Resumable Upload'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            server=ServerConfig(**data.get('server', {})),
            storage=StorageConfig(**data.get('storage', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            events=EventBusConfig(**data.get('events', {})),
            performance=PerformanceConfig(**data.get('performance', {})),
            config_file_path=data.get('config_file_path') or ""
        )

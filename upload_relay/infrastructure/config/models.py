"""
Configuration models and data structures.

This module defines the configuration models for the relay, providing type
safety and validation for every tunable limit and endpoint.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

MB = 1024 * 1024


@dataclass
class ServerConfig:
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class StorageConfig:
    """Blob store configuration."""
    upload_directory: str = "./uploads"
    retention_seconds: float = 3600.0
    chunk_size: int = MB


@dataclass
class LimitsConfig:
    """Ingestion ceilings."""
    max_file_size: int = 500 * MB
    max_files_per_session: int = 50


@dataclass
class SessionConfig:
    """Session lifecycle configuration."""
    inactivity_timeout: float = 300.0


@dataclass
class DownstreamConfig:
    """Downstream webhook configuration."""
    webhook_url: str = "http://localhost:5678/webhook/process-upload"
    auth_token: str = ""
    auth_header: str = "X-Auth-Token"
    send_timeout: float = 600.0
    file_field: str = "data"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    rotation: str = "10 MB"
    retention: str = "10 days"
    console_enabled: bool = True
    file_enabled: bool = True


@dataclass
class RelayConfig:
    """Main application configuration."""

    name: str = "Upload Relay"
    version: str = "0.1.0"
    debug: bool = False
    environment: str = "production"

    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    downstream: DownstreamConfig = field(default_factory=DownstreamConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate_port()
        self._validate_limits()
        self._validate_timeouts()

    def _validate_port(self) -> None:
        if not (1 <= self.server.port <= 65535):
            raise ValueError(f"Server port must be between 1 and 65535, got {self.server.port}")

    def _validate_limits(self) -> None:
        limits = [
            ("Max file size", self.limits.max_file_size),
            ("Max files per session", self.limits.max_files_per_session),
            ("Storage chunk size", self.storage.chunk_size),
        ]

        for name, value in limits:
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

    def _validate_timeouts(self) -> None:
        timeouts = [
            ("Inactivity timeout", self.session.inactivity_timeout),
            ("Send timeout", self.downstream.send_timeout),
            ("Retention horizon", self.storage.retention_seconds),
        ]

        for name, timeout in timeouts:
            if timeout <= 0:
                raise ValueError(f"{name} must be positive, got {timeout}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RelayConfig':
        """Create configuration from dictionary."""
        return cls(
            name=data.get('name', 'Upload Relay'),
            version=data.get('version', '0.1.0'),
            debug=data.get('debug', False),
            environment=data.get('environment', 'production'),
            server=ServerConfig(**data.get('server', {})),
            storage=StorageConfig(**data.get('storage', {})),
            limits=LimitsConfig(**data.get('limits', {})),
            session=SessionConfig(**data.get('session', {})),
            downstream=DownstreamConfig(**data.get('downstream', {})),
            logging=LoggingConfig(**data.get('logging', {})),
            config_file_path=data.get('config_file_path'),
        )

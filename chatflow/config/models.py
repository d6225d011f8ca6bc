"""
Configuration models for the chatflow application.

This module defines dataclasses for the different configuration domains,
providing type safety and validation for all application settings.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from chatflow.config.constants import (
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_MAX_CHAINED_EVENTS,
    DEFAULT_POLL_BACKOFF,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TELEGRAM_API_BASE_URL,
)


class Environment(Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ServerConfig:
    """Webhook server configuration settings."""

    host: str = "0.0.0.0"
    port: int = 8000
    environment: Environment = Environment.PRODUCTION
    access_log: bool = False


@dataclass
class TelegramConfig:
    """Telegram Bot API configuration.

    The token is opaque to the core and only handed to the transport adapters.
    """

    api_token: Optional[str] = None
    base_url: str = DEFAULT_TELEGRAM_API_BASE_URL
    poll_timeout: int = DEFAULT_POLL_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    poll_backoff: float = DEFAULT_POLL_BACKOFF
    webhook_secret: Optional[str] = None
    allowed_updates: List[str] = field(default_factory=lambda: ["message"])


@dataclass
class EngineConfig:
    """FSM engine limits."""

    max_chained_events: int = DEFAULT_MAX_CHAINED_EVENTS


@dataclass
class RegistryConfig:
    """Conversation registry settings.

    ``idle_timeout`` of None disables idle eviction; conversations then live
    until they reach the terminal state.
    """

    idle_timeout: Optional[int] = None
    cleanup_interval: int = DEFAULT_CLEANUP_INTERVAL


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    log_filename: str = "chatflow.log"


@dataclass
class ApplicationConfig:
    """Master application configuration containing all domain configs."""

    server: ServerConfig = field(default_factory=ServerConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.server.port <= 0 or self.server.port > 65535:
            errors.append("Server port must be between 1 and 65535")

        if self.engine.max_chained_events <= 0:
            errors.append("ENGINE_MAX_CHAINED_EVENTS must be positive")

        if self.registry.idle_timeout is not None and self.registry.idle_timeout <= 0:
            errors.append("REGISTRY_IDLE_TIMEOUT must be positive when set")

        if self.registry.cleanup_interval <= 0:
            errors.append("REGISTRY_CLEANUP_INTERVAL must be positive")

        if self.telegram.poll_timeout < 0:
            errors.append("TELEGRAM_POLL_TIMEOUT must not be negative")

        if self.telegram.request_timeout <= 0:
            errors.append("TELEGRAM_REQUEST_TIMEOUT must be positive")

        return errors

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.server.environment == Environment.DEVELOPMENT
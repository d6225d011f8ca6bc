"""
Environment variable loader for chatflow configuration.

This module handles loading configuration from environment variables,
with type conversion, validation, and fallback to defaults.

Environment variables must be explicitly loaded using load_env_file() before
accessing any configuration functions.
"""

import os
from pathlib import Path
from typing import List, Optional, Type, TypeVar, cast, get_origin

from dotenv import load_dotenv

from .constants import (
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_MAX_CHAINED_EVENTS,
    DEFAULT_POLL_BACKOFF,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TELEGRAM_API_BASE_URL,
)
from .models import (
    ApplicationConfig,
    EngineConfig,
    Environment,
    LoggingConfig,
    LogLevel,
    RegistryConfig,
    ServerConfig,
    TelegramConfig,
)


# Track if environment variables have been loaded
_env_loaded = False


def load_env_file(env_file: Optional[str] = None) -> None:
    """Load environment variables from a .env file.

    This function must be called before accessing any configuration functions.

    Args:
        env_file: Path to the .env file. If None, uses default behavior.
    """
    global _env_loaded
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()
    _env_loaded = True


def _check_env_loaded() -> None:
    """Check if environment variables have been loaded, raise error if not."""
    if not _env_loaded:
        raise RuntimeError(
            "Environment variables not loaded. Call load_env_file() before accessing configuration."
        )


T = TypeVar("T")


def safe_convert(value: Optional[str], target_type: Type[T], default: T) -> T:
    """Safely convert environment variable string to target type."""
    if value is None:
        return default

    try:
        if target_type == bool:
            return cast(T, value.strip().lower() in ("true", "1", "yes"))
        elif target_type == int:
            return cast(T, int(value))
        elif target_type == float:
            return cast(T, float(value))
        elif target_type == str:
            return cast(T, value)
        elif target_type == Path:
            return cast(T, Path(value))
        elif get_origin(target_type) == list:
            return cast(
                T,
                (
                    [item.strip() for item in value.split(",") if item.strip()]
                    if value
                    else default
                ),
            )
        elif callable(target_type):
            return cast(T, target_type(value))  # type: ignore
        else:
            return default
    except (ValueError, TypeError):
        return default


def safe_string_or_none(value: Optional[str]) -> Optional[str]:
    """Convert environment variable to string or None if empty."""
    if value is None or value.strip() == "":
        return None
    return value.strip()


def load_server_config() -> ServerConfig:
    """Load server configuration from environment variables."""
    _check_env_loaded()

    env_str = os.getenv("ENV", "production").lower()
    environment = (
        Environment.DEVELOPMENT if env_str == "development" else Environment.PRODUCTION
    )
    if env_str == "testing":
        environment = Environment.TESTING

    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=safe_convert(os.getenv("PORT"), int, 8000),
        environment=environment,
        access_log=safe_convert(os.getenv("ACCESS_LOG"), bool, False),
    )


def load_telegram_config() -> TelegramConfig:
    """Load Telegram Bot API configuration from environment variables."""
    _check_env_loaded()

    return TelegramConfig(
        api_token=safe_string_or_none(os.getenv("TELEGRAM_API_TOKEN")),
        base_url=os.getenv("TELEGRAM_API_BASE_URL", DEFAULT_TELEGRAM_API_BASE_URL).rstrip("/"),
        poll_timeout=safe_convert(os.getenv("TELEGRAM_POLL_TIMEOUT"), int, DEFAULT_POLL_TIMEOUT),
        request_timeout=safe_convert(
            os.getenv("TELEGRAM_REQUEST_TIMEOUT"), float, DEFAULT_REQUEST_TIMEOUT
        ),
        poll_backoff=safe_convert(os.getenv("TELEGRAM_POLL_BACKOFF"), float, DEFAULT_POLL_BACKOFF),
        webhook_secret=safe_string_or_none(os.getenv("TELEGRAM_WEBHOOK_SECRET")),
        allowed_updates=safe_convert(
            os.getenv("TELEGRAM_ALLOWED_UPDATES"), List[str], ["message"]
        ),
    )


def load_engine_config() -> EngineConfig:
    """Load FSM engine configuration from environment variables."""
    _check_env_loaded()

    return EngineConfig(
        max_chained_events=safe_convert(
            os.getenv("ENGINE_MAX_CHAINED_EVENTS"), int, DEFAULT_MAX_CHAINED_EVENTS
        ),
    )


def load_registry_config() -> RegistryConfig:
    """Load conversation registry configuration from environment variables."""
    _check_env_loaded()

    idle_timeout = safe_string_or_none(os.getenv("REGISTRY_IDLE_TIMEOUT"))

    return RegistryConfig(
        idle_timeout=safe_convert(idle_timeout, int, None),
        cleanup_interval=safe_convert(
            os.getenv("REGISTRY_CLEANUP_INTERVAL"), int, DEFAULT_CLEANUP_INTERVAL
        ),
    )


def load_logging_config() -> LoggingConfig:
    """Load logging configuration from environment variables."""
    _check_env_loaded()

    level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    try:
        level = LogLevel(level_str)
    except ValueError:
        level = LogLevel.INFO

    return LoggingConfig(
        level=level,
        log_dir=safe_convert(os.getenv("LOG_DIR"), Path, Path("logs")),
        log_filename=os.getenv("LOG_FILENAME", "chatflow.log"),
    )


def load_application_config() -> ApplicationConfig:
    """Load complete application configuration from environment variables."""
    _check_env_loaded()

    config = ApplicationConfig(
        server=load_server_config(),
        telegram=load_telegram_config(),
        engine=load_engine_config(),
        registry=load_registry_config(),
        logging=load_logging_config(),
    )

    # Validate configuration and raise exceptions for critical errors
    validation_errors = config.validate()
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(
            f"  - {error}" for error in validation_errors
        )
        raise ValueError(error_msg)

    return config

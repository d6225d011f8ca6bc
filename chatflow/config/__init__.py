"""
Configuration package for the chatflow bot.

Provides constants, dataclass configuration models, environment loading and
logging setup.

Usage:

```python
from chatflow.config import get_config
from chatflow.config.env_loader import load_env_file
from chatflow.config.logging_config import configure_logging

load_env_file()
config = get_config()
logger = configure_logging("my_module")
logger.info(f"Max chained events: {config.engine.max_chained_events}")
```
"""

from .settings import get_config, set_config

from .models import (
    ApplicationConfig,
    ServerConfig,
    TelegramConfig,
    EngineConfig,
    RegistryConfig,
    LoggingConfig,
    Environment,
    LogLevel,
)

from .logging_config import configure_logging

__all__ = [
    "get_config",
    "set_config",
    "ApplicationConfig",
    "ServerConfig",
    "TelegramConfig",
    "EngineConfig",
    "RegistryConfig",
    "LoggingConfig",
    "Environment",
    "LogLevel",
    "configure_logging",
]

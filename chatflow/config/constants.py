"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "chatflow"

# Telegram Bot API defaults
DEFAULT_TELEGRAM_API_BASE_URL = "https://api.telegram.org"
DEFAULT_POLL_TIMEOUT = 30  # seconds the Bot API may hold a getUpdates request
DEFAULT_REQUEST_TIMEOUT = 10.0  # seconds for a single outbound request
DEFAULT_POLL_BACKOFF = 5.0  # seconds to wait after a failed poll

# Engine limits
DEFAULT_MAX_CHAINED_EVENTS = 16  # synthetic events per inbound update

# Registry defaults (idle eviction is disabled unless a timeout is configured)
DEFAULT_CLEANUP_INTERVAL = 300  # 5 minutes

# Command syntax
COMMAND_PREFIX = "/"
HELLO_COMMAND = "hello"
ECHO_COMMAND = "another"

# Reply texts
NAME_PROMPT_TEXT = "Hello! What is your name?"
GREETING_TEMPLATE = "okay, {name}!"
PARSE_ERROR_TEXT = "Cannot parse command."

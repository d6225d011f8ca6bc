"""Adapters between the conversation core and the chat platform.

The core only depends on the two interfaces in ``base``: ReplySender and
UpdateSource. Telegram and local implementations live next to them.
"""

from .base import ReplySender, UpdateSource
from .local import ConsoleReplySender, ConsoleUpdateSource, InMemoryReplySender, QueueUpdateSource
from .telegram import TelegramBotClient, TelegramPollingSource, TelegramReplySender

__all__ = [
    "ReplySender",
    "UpdateSource",
    "ConsoleReplySender",
    "ConsoleUpdateSource",
    "InMemoryReplySender",
    "QueueUpdateSource",
    "TelegramBotClient",
    "TelegramPollingSource",
    "TelegramReplySender",
]

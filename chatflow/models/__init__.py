"""Data models for conversations and the Telegram wire format."""

from .conversation import Event, ExtendedState, InboundMessage, State
from .telegram_api import TelegramChat, TelegramMessage, TelegramUpdate, TelegramUser

__all__ = [
    "Event",
    "ExtendedState",
    "InboundMessage",
    "State",
    "TelegramChat",
    "TelegramMessage",
    "TelegramUpdate",
    "TelegramUser",
]

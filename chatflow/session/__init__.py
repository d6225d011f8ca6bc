"""Live conversation registry."""

from .registry import ConversationHandle, ConversationRegistry

__all__ = ["ConversationHandle", "ConversationRegistry"]

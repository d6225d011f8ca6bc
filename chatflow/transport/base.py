"""Interfaces the conversation core uses to talk to the chat platform."""

from abc import ABC, abstractmethod
from typing import AsyncIterator, List

from chatflow.models.conversation import InboundMessage


class ReplySender(ABC):
    """Sends text replies to a conversation.

    Implementations own their timeouts; the core never retries a failed send.
    """

    @abstractmethod
    async def send(self, conversation_key: str, text: str) -> None:
        """Send ``text`` to the chat identified by ``conversation_key``.

        Raises:
            SendError: If the message could not be delivered
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the sender (optional)."""
        pass


class UpdateSource(ABC):
    """Produces inbound messages in batches.

    The dispatcher calls ``acknowledge`` once every message of a batch has
    been processed; what acknowledgement means is up to the source.
    """

    @abstractmethod
    def batches(self) -> AsyncIterator[List[InboundMessage]]:
        """Yield batches of inbound messages until the source is exhausted or closed."""
        pass

    async def acknowledge(self, batch: List[InboundMessage]) -> None:
        """Confirm that ``batch`` has been consumed (optional)."""
        pass

    async def close(self) -> None:
        """Stop producing batches and release resources (optional)."""
        pass

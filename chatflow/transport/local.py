"""Local transport adapters.

In-process implementations of the transport interfaces for tests, the
webhook server and interactive console runs. None of them talk to the
network.
"""

import asyncio
import sys
from typing import AsyncIterator, Dict, List, Optional, Tuple

from chatflow.config.logging_config import configure_logging
from chatflow.exceptions import SendError
from chatflow.models.conversation import InboundMessage
from chatflow.transport.base import ReplySender, UpdateSource

logger = configure_logging("local_transport")


class InMemoryReplySender(ReplySender):
    """Records every reply instead of sending it.

    Keys listed in ``failing_keys`` raise SendError, which lets callers
    exercise the action error path.
    """

    def __init__(self, failing_keys: Optional[List[str]] = None):
        self.sent: List[Tuple[str, str]] = []
        self.failing_keys = set(failing_keys or [])

    async def send(self, conversation_key: str, text: str) -> None:
        if conversation_key in self.failing_keys:
            raise SendError(f"delivery to {conversation_key} refused", conversation_key)
        self.sent.append((conversation_key, text))

    def replies_for(self, conversation_key: str) -> List[str]:
        return [text for key, text in self.sent if key == conversation_key]

    def by_conversation(self) -> Dict[str, List[str]]:
        replies: Dict[str, List[str]] = {}
        for key, text in self.sent:
            replies.setdefault(key, []).append(text)
        return replies

    def clear(self) -> None:
        self.sent.clear()


class ConsoleReplySender(ReplySender):
    """Prints replies to stdout."""

    async def send(self, conversation_key: str, text: str) -> None:
        print(f"[bot -> {conversation_key}] {text}", flush=True)


class QueueUpdateSource(UpdateSource):
    """An UpdateSource fed from an asyncio queue.

    Producers (the webhook endpoint, tests) call ``put``. ``batches`` waits for
    the first message, then drains whatever else is already queued, up to
    ``max_batch_size``.
    """

    _CLOSED = object()

    def __init__(self, max_batch_size: int = 100):
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be positive")
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()
        self._max_batch_size = max_batch_size
        self._closed = False
        self.acknowledged = 0

    async def put(self, message: InboundMessage) -> None:
        if self._closed:
            raise RuntimeError("update source is closed")
        await self._queue.put(message)

    def put_nowait(self, message: InboundMessage) -> None:
        if self._closed:
            raise RuntimeError("update source is closed")
        self._queue.put_nowait(message)

    def qsize(self) -> int:
        return self._queue.qsize()

    async def batches(self) -> AsyncIterator[List[InboundMessage]]:
        while True:
            item = await self._queue.get()
            if item is self._CLOSED:
                return
            batch = [item]
            while len(batch) < self._max_batch_size and not self._queue.empty():
                item = self._queue.get_nowait()
                if item is self._CLOSED:
                    yield batch
                    return
                batch.append(item)
            yield batch

    async def acknowledge(self, batch: List[InboundMessage]) -> None:
        self.acknowledged += len(batch)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            await self._queue.put(self._CLOSED)


class ConsoleUpdateSource(UpdateSource):
    """Reads lines from stdin as messages of a single chat.

    Stops at end of input.
    """

    def __init__(self, chat_key: str = "console", sender: str = "console"):
        self.chat_key = chat_key
        self.sender = sender
        self._message_id = 0
        self._closed = False

    async def batches(self) -> AsyncIterator[List[InboundMessage]]:
        loop = asyncio.get_running_loop()
        while not self._closed:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                logger.info("End of console input")
                return
            text = line.rstrip("\n")
            if not text:
                continue
            self._message_id += 1
            yield [
                InboundMessage(
                    chat_key=self.chat_key,
                    sender=self.sender,
                    text=text,
                    message_id=self._message_id,
                )
            ]

    async def close(self) -> None:
        self._closed = True

"""Consumes an UpdateSource and fans messages out to conversations.

Each message of a batch becomes its own task. Tasks are created in arrival
order, and ConversationService serializes same-chat tasks on the
conversation lock, so per-chat order is kept while distinct chats run
concurrently. A batch is acknowledged once all of its tasks have finished.
"""

import asyncio
from typing import List, Optional

from chatflow.config.logging_config import configure_logging
from chatflow.handlers.conversation_service import ConversationService
from chatflow.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from chatflow.models.conversation import InboundMessage, State
from chatflow.transport.base import UpdateSource

logger = configure_logging("update_dispatcher")


class UpdateDispatcher:
    """Runs the receive loop for one UpdateSource.

    Args:
        service: Conversation service applying messages
        source: Source of inbound message batches
        error_handler: Where unexpected per-message failures are reported
    """

    def __init__(
        self,
        service: ConversationService,
        source: UpdateSource,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.service = service
        self.source = source
        self.error_handler = error_handler or get_error_handler()
        self.batches_processed = 0
        self.messages_failed = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> None:
        """Consume batches until the source is exhausted or closed."""
        self._running = True
        logger.info(f"Dispatcher started with {type(self.source).__name__}")
        try:
            async for batch in self.source.batches():
                if batch:
                    await self.dispatch_batch(batch)
                await self.source.acknowledge(batch)
                self.batches_processed += 1
        finally:
            self._running = False
            logger.info("Dispatcher stopped")

    async def dispatch_batch(self, batch: List[InboundMessage]) -> List[Optional[State]]:
        """Process one batch concurrently and wait for every message.

        Returns:
            Resulting state per message (None where processing failed)
        """
        logger.debug(f"Dispatching batch of {len(batch)} messages")
        tasks = [asyncio.create_task(self.service.handle_message(message)) for message in batch]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        states: List[Optional[State]] = []
        for message, result in zip(batch, results):
            if isinstance(result, Exception):
                self.messages_failed += 1
                await self.error_handler.handle_error(
                    result,
                    context=ErrorContext.UNKNOWN,
                    severity=ErrorSeverity.HIGH,
                    operation="dispatch",
                    conversation_key=message.chat_key,
                    message_id=message.message_id,
                )
                states.append(None)
            elif isinstance(result, BaseException):
                raise result
            else:
                states.append(result)
        return states

    async def stop(self) -> None:
        """Close the source; ``run`` returns after the current batch."""
        await self.source.close()

    def get_stats(self) -> dict:
        return {
            "running": self._running,
            "batches_processed": self.batches_processed,
            "messages_failed": self.messages_failed,
        }

"""Per-conversation processing of inbound messages.

ConversationService is the unit of work for one inbound message: look up (or
create) the conversation, record the message, apply the classified event and
remove the conversation if it reached a terminal state. All of it happens
under the conversation's own lock, so messages for one chat are applied one at
a time and in arrival order while different chats proceed concurrently.
"""

from typing import Optional

from chatflow.config.logging_config import configure_logging
from chatflow.exceptions import EngineLoopError, GuardEvaluationError
from chatflow.fsm.engine import FSMEngine
from chatflow.handlers.command_classifier import classify
from chatflow.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from chatflow.models.conversation import InboundMessage, State
from chatflow.session.registry import ConversationRegistry

logger = configure_logging("conversation_service")


class ConversationService:
    """Applies inbound messages to their conversations.

    Args:
        registry: Registry of live conversations
        engine: Engine executing the conversation machine
        error_handler: Where conversation-fatal errors are reported
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        engine: FSMEngine,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.registry = registry
        self.engine = engine
        self.error_handler = error_handler or get_error_handler()
        self.messages_processed = 0
        self.conversations_ended = 0
        self.conversations_dropped = 0

    async def handle_message(self, message: InboundMessage) -> Optional[State]:
        """Process one inbound message.

        Returns:
            The conversation's state after processing, or None if the
            conversation hit a fatal error and was dropped
        """
        event = classify(message)
        key = message.chat_key

        while True:
            handle = self.registry.get_or_create(key)
            async with handle.lock:
                if handle.closed:
                    # Removed while we waited for the lock; start over on a fresh handle
                    continue

                handle.extended_state.record(message)
                logger.debug(
                    f"[{key}] Applying {event.name} in {handle.state.name} "
                    f"(message {message.message_id})"
                )

                try:
                    state = await self.engine.apply(handle, event)
                except (GuardEvaluationError, EngineLoopError) as e:
                    context = (
                        ErrorContext.GUARD
                        if isinstance(e, GuardEvaluationError)
                        else ErrorContext.ENGINE
                    )
                    await self.error_handler.handle_error(
                        e,
                        context=context,
                        severity=ErrorSeverity.HIGH,
                        operation="apply",
                        conversation_key=key,
                        state=handle.state.name,
                    )
                    self.registry.remove(key, handle)
                    self.conversations_dropped += 1
                    logger.warning(f"[{key}] Conversation dropped after {type(e).__name__}")
                    return None
                finally:
                    self.messages_processed += 1

                if self.engine.table.is_terminal(state):
                    self.registry.remove(key, handle)
                    self.conversations_ended += 1
                    logger.info(f"[{key}] Conversation ended")
                return state

    def get_stats(self) -> dict:
        return {
            "messages_processed": self.messages_processed,
            "conversations_ended": self.conversations_ended,
            "conversations_dropped": self.conversations_dropped,
        }

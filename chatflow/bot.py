"""Assembly of the conversation core.

ChatBot wires the registry, the conversation machine, the engine and the
conversation service together from an ApplicationConfig and a ReplySender.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from chatflow.config.logging_config import configure_logging
from chatflow.config.models import ApplicationConfig
from chatflow.fsm.conversation_machine import build_conversation_table
from chatflow.fsm.engine import FSMEngine
from chatflow.handlers.conversation_service import ConversationService
from chatflow.handlers.error_handler import ErrorHandler
from chatflow.handlers.update_dispatcher import UpdateDispatcher
from chatflow.session.registry import ConversationRegistry
from chatflow.transport.base import ReplySender, UpdateSource

logger = configure_logging("bot")


@dataclass
class ChatBot:
    """The wired conversation core."""

    registry: ConversationRegistry
    engine: FSMEngine
    service: ConversationService
    error_handler: ErrorHandler
    sender: ReplySender

    @classmethod
    def create(
        cls,
        sender: ReplySender,
        config: Optional[ApplicationConfig] = None,
        error_handler: Optional[ErrorHandler] = None,
    ) -> "ChatBot":
        """Build the core.

        The transition table is validated here, so a broken machine fails at
        startup rather than on the first message.
        """
        config = config or ApplicationConfig()
        error_handler = error_handler or ErrorHandler()

        table = build_conversation_table()
        registry = ConversationRegistry(
            initial_state=table.initial,
            idle_timeout=config.registry.idle_timeout,
            cleanup_interval=config.registry.cleanup_interval,
        )
        engine = FSMEngine(
            table,
            sender,
            max_chained_events=config.engine.max_chained_events,
            error_handler=error_handler,
        )
        service = ConversationService(registry, engine, error_handler)

        logger.info(f"Chat bot assembled with {len(table)} transitions")
        return cls(registry, engine, service, error_handler, sender)

    def dispatcher(self, source: UpdateSource) -> UpdateDispatcher:
        return UpdateDispatcher(self.service, source, self.error_handler)

    async def start(self) -> None:
        await self.registry.start_cleanup_task()

    async def stop(self) -> None:
        await self.registry.stop_cleanup_task()
        await self.sender.close()

    def get_stats(self) -> Dict[str, Any]:
        return {
            "registry": self.registry.get_stats(),
            "service": self.service.get_stats(),
            "errors": self.error_handler.get_error_stats(),
        }

"""
Pytest configuration file for the chatflow test suite.

This file contains fixtures that are shared across multiple test files.
"""

import pytest

from chatflow.fsm.conversation_machine import build_conversation_table
from chatflow.fsm.engine import FSMEngine
from chatflow.handlers.conversation_service import ConversationService
from chatflow.handlers.error_handler import ErrorHandler
from chatflow.models.conversation import InboundMessage
from chatflow.session.registry import ConversationRegistry
from chatflow.transport.local import InMemoryReplySender


def make_message(chat_key: str, text: str, message_id: int = 1, sender: str = "user") -> InboundMessage:
    """Build an inbound message for tests."""
    return InboundMessage(chat_key=chat_key, sender=sender, text=text, message_id=message_id)


@pytest.fixture
def sender():
    """Reply sender that records every reply."""
    return InMemoryReplySender()


@pytest.fixture
def error_handler():
    """Fresh error handler so error counts don't leak between tests."""
    return ErrorHandler()


@pytest.fixture
def table():
    return build_conversation_table()


@pytest.fixture
def registry():
    return ConversationRegistry()


@pytest.fixture
def engine(table, sender, error_handler):
    return FSMEngine(table, sender, error_handler=error_handler)


@pytest.fixture
def service(registry, engine, error_handler):
    return ConversationService(registry, engine, error_handler)

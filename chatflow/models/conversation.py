"""Conversation state models.

This module defines the closed sets of states and events the conversation
machine works with, the inbound message record and the per-conversation
extended state that guards and actions read.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class State(str, Enum):
    """Conversation states.

    Attributes:
        IDLE: Initial state, waiting for a command
        AWAITING_COMMAND: Choice pseudo-state; never stored on a handle
        HELLO_FLOW_PROMPTING: The name prompt was sent
        HELLO_FLOW_AWAITING_NAME: The greeting was sent
        ECHO_FLOW: The echo reply was sent
        ENDED: Terminal state; the conversation is removed
    """

    IDLE = "idle"
    AWAITING_COMMAND = "awaiting_command"
    HELLO_FLOW_PROMPTING = "hello_flow_prompting"
    HELLO_FLOW_AWAITING_NAME = "hello_flow_awaiting_name"
    ECHO_FLOW = "echo_flow"
    ENDED = "ended"


class Event(str, Enum):
    """Events that drive transitions. Events are never stored."""

    TEXT_RECEIVED = "text_received"
    INVALID_INPUT = "invalid_input"
    RESPONSE_SENT = "response_sent"


@dataclass(frozen=True)
class InboundMessage:
    """A single inbound chat message as seen by the core.

    Attributes:
        chat_key: Conversation key (chat identity)
        sender: Display name or id of the author
        text: Message text; empty for non-text messages
        message_id: Platform message identifier
        update_id: Platform update identifier, used for acknowledgement
    """

    chat_key: str
    sender: str
    text: str
    message_id: int
    update_id: Optional[int] = None


@dataclass
class ExtendedState:
    """Per-conversation context available to guards and actions.

    Holds the message that triggered the current event. It is created with
    the conversation and discarded with it.
    """

    conversation_key: str
    message: Optional[InboundMessage] = None
    messages_seen: int = 0
    updated_at: float = field(default_factory=time.time)

    def record(self, message: InboundMessage) -> None:
        """Store ``message`` as the triggering message for the next event."""
        self.message = message
        self.messages_seen += 1
        self.updated_at = time.time()

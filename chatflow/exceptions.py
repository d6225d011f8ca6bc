"""Exception hierarchy for the conversation engine.

Conversation-local errors never cross conversation boundaries: the service
layer catches ``GuardEvaluationError`` and ``EngineLoopError`` and drops the
affected conversation, while anything raised by an action is turned into an
error event by the engine.
"""

from typing import Optional


class ChatFlowError(Exception):
    """Base class for all chatflow errors."""

    def __init__(self, message: str, conversation_key: Optional[str] = None):
        self.message = message
        self.conversation_key = conversation_key
        super().__init__(message)


class ConfigurationError(ChatFlowError):
    """The transition table is invalid (ambiguous, missing default, unknown state)."""


class ClassificationError(ChatFlowError):
    """An inbound update could not be classified into an event."""


class GuardEvaluationError(ChatFlowError):
    """A guard needed data that the extended state does not hold."""


class ActionError(ChatFlowError):
    """An action handler failed to do its job."""


class SendError(ActionError):
    """The reply-sending capability failed to deliver a message."""

    def __init__(
        self,
        message: str,
        conversation_key: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, conversation_key)
        self.status_code = status_code


class EngineLoopError(ChatFlowError):
    """Too many chained synthetic events were emitted for one inbound update."""


class TransportError(ChatFlowError):
    """A call to the chat platform failed."""

    def __init__(
        self,
        message: str,
        conversation_key: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, conversation_key)
        self.status_code = status_code

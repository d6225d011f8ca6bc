"""Action wrapper and the context handed to action callbacks."""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Union

from chatflow.models.conversation import Event, ExtendedState


@dataclass
class ActionContext:
    """Everything an action may touch while it runs.

    Attributes:
        conversation_key: Key of the conversation being advanced
        extended_state: The conversation's extended state
        sender: Reply-sending capability (see chatflow.transport.base.ReplySender)
        emitted: Follow-up events emitted so far; applied after the action returns
    """

    conversation_key: str
    extended_state: ExtendedState
    sender: Any
    emitted: List[Event] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Text of the triggering message, or an empty string if there is none."""
        message = self.extended_state.message
        return message.text if message else ""

    def emit(self, event: Event) -> None:
        """Queue a synthetic event for the same conversation."""
        self.emitted.append(event)

    async def reply(self, text: str) -> None:
        """Send ``text`` to the conversation's chat."""
        await self.sender.send(self.conversation_key, text)


ActionCallback = Callable[[ActionContext], Union[None, Awaitable[None]]]


class Action:
    """A side-effecting callback run on a transition or on state entry.

    If the callback raises, the engine applies ``error_event`` to the same
    conversation instead of letting the exception escape.

    Args:
        callback: Sync or async callable taking an ActionContext
        name: Name used in logs; defaults to the callback's name
        error_event: Event applied when the callback raises
    """

    def __init__(
        self,
        callback: ActionCallback,
        name: Optional[str] = None,
        error_event: Event = Event.INVALID_INPUT,
    ):
        self.callback = callback
        self.name = name or getattr(callback, "__name__", "action")
        self.error_event = error_event

    async def __call__(self, context: ActionContext) -> None:
        result = self.callback(context)
        if inspect.isawaitable(result):
            await result

    def __repr__(self) -> str:
        return f"Action({self.name})"

"""Table-driven state machine engine.

The engine advances one conversation at a time. Callers must hold the
conversation's lock for the whole ``apply`` call; the engine itself keeps no
per-conversation state between calls.

Each ``apply`` drains a small FIFO queue that starts with the inbound event.
Actions may append follow-up events to it (an echo reply emits
``RESPONSE_SENT``) and a failing action appends its error event. The number of
such synthetic events per inbound update is capped; exceeding the cap raises
EngineLoopError.
"""

import inspect
from collections import deque
from typing import Any, Callable, Deque, List, Optional

from chatflow.config.constants import DEFAULT_MAX_CHAINED_EVENTS
from chatflow.config.logging_config import configure_logging
from chatflow.exceptions import EngineLoopError
from chatflow.fsm.actions import Action, ActionContext
from chatflow.fsm.transitions import TransitionTable
from chatflow.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from chatflow.models.conversation import Event, State
from chatflow.session.registry import ConversationHandle

logger = configure_logging("engine")

# listener(conversation_key, source, event, target); event is None for choice exits
TransitionListener = Callable[[str, State, Optional[Event], State], Any]


class FSMEngine:
    """Executes a TransitionTable against conversation handles.

    Args:
        table: Validated transition table
        sender: Reply-sending capability handed to actions
        max_chained_events: Synthetic events allowed per inbound update
        error_handler: Where action failures are reported
    """

    def __init__(
        self,
        table: TransitionTable,
        sender: Any,
        max_chained_events: int = DEFAULT_MAX_CHAINED_EVENTS,
        error_handler: Optional[ErrorHandler] = None,
    ):
        if max_chained_events <= 0:
            raise ValueError("max_chained_events must be positive")

        self.table = table
        self.sender = sender
        self.max_chained_events = max_chained_events
        self.error_handler = error_handler or get_error_handler()
        self._listeners: List[TransitionListener] = []

    def add_transition_listener(self, listener: TransitionListener) -> None:
        """Register a callback invoked after every state change."""
        self._listeners.append(listener)

    def remove_transition_listener(self, listener: TransitionListener) -> bool:
        if listener in self._listeners:
            self._listeners.remove(listener)
            return True
        return False

    async def apply(self, handle: ConversationHandle, event: Event) -> State:
        """Apply ``event`` and every event it causes to the conversation.

        Args:
            handle: Conversation to advance; its lock must be held by the caller
            event: Inbound event

        Returns:
            The conversation's state once the event queue is drained

        Raises:
            GuardEvaluationError: A guard lacked the data it inspects
            EngineLoopError: Too many chained synthetic events
        """
        queue: Deque[Event] = deque([event])
        synthetic = 0
        first = True

        while queue:
            current = queue.popleft()
            if not first:
                synthetic += 1
                if synthetic > self.max_chained_events:
                    raise EngineLoopError(
                        f"more than {self.max_chained_events} chained events "
                        f"(last: {current.name} in {handle.state.name})",
                        handle.key,
                    )
            first = False

            if self.table.is_terminal(handle.state):
                logger.debug(
                    f"[{handle.key}] Dropping {current.name}: conversation already in "
                    f"terminal state {handle.state.name}"
                )
                queue.clear()
                break

            await self._fire(handle, current, queue)

        handle.touch()
        return handle.state

    async def _fire(
        self, handle: ConversationHandle, event: Event, queue: Deque[Event]
    ) -> None:
        source = handle.state
        extended_state = handle.extended_state

        transition = self.table.find(source, event)
        if transition is None:
            logger.debug(f"[{handle.key}] No transition from {source.name} on {event.name}")
            return

        if transition.guard is not None and not transition.guard(extended_state):
            # The conversation stays where it is; surface it so a stuck chat is visible
            logger.info(
                f"[{handle.key}] Guard {transition.guard!r} declined {transition}; "
                f"staying in {source.name}"
            )
            return

        await self._run_action(transition.action, handle, queue)

        target = transition.target
        if self.table.is_choice(target):
            await self._notify(handle.key, source, event, target)
            branch = self.table.choice(target).select(extended_state)
            logger.debug(f"[{handle.key}] Choice {target.name} selected {branch.target.name}")
            await self._run_action(branch.action, handle, queue)
            await self._enter(handle, target, None, branch.target, queue)
        else:
            await self._enter(handle, source, event, target, queue)

    async def _enter(
        self,
        handle: ConversationHandle,
        source: State,
        event: Optional[Event],
        target: State,
        queue: Deque[Event],
    ) -> None:
        handle.state = target
        trigger = event.name if event is not None else "choice"
        logger.info(f"[{handle.key}] {source.name} --{trigger}--> {target.name}")
        await self._notify(handle.key, source, event, target)
        await self._run_action(self.table.entry_action(target), handle, queue)

    async def _run_action(
        self, action: Optional[Action], handle: ConversationHandle, queue: Deque[Event]
    ) -> None:
        if action is None:
            return

        context = ActionContext(
            conversation_key=handle.key,
            extended_state=handle.extended_state,
            sender=self.sender,
        )
        try:
            await action(context)
        except Exception as e:
            await self.error_handler.handle_error(
                e,
                context=ErrorContext.ACTION,
                severity=ErrorSeverity.MEDIUM,
                operation=action.name,
                conversation_key=handle.key,
                state=handle.state.name,
            )
            queue.append(action.error_event)
            return

        queue.extend(context.emitted)

    async def _notify(
        self, key: str, source: State, event: Optional[Event], target: State
    ) -> None:
        for listener in self._listeners:
            try:
                result = listener(key, source, event, target)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Error in transition listener: {e}")

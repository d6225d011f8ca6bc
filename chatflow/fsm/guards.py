"""Guards gating conversation transitions.

A guard is a side-effect-free predicate over the extended state. Guards read
the message that triggered the current event and never perform I/O.
"""

from chatflow.config.constants import COMMAND_PREFIX
from chatflow.exceptions import GuardEvaluationError
from chatflow.models.conversation import ExtendedState


class Guard:
    """A predicate that can be evaluated against an extended state."""

    description = "guard"

    def evaluate(self, extended_state: ExtendedState) -> bool:
        """
        Evaluate this guard against the given extended state.

        Args:
            extended_state: Context of the conversation being advanced

        Returns:
            True if the guarded transition may fire, False otherwise

        Raises:
            GuardEvaluationError: If the data the guard inspects is missing
        """
        raise NotImplementedError("Subclasses must implement evaluate()")

    def __call__(self, extended_state: ExtendedState) -> bool:
        return self.evaluate(extended_state)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.description})"


def _message_text(extended_state: ExtendedState) -> str:
    if extended_state.message is None:
        raise GuardEvaluationError(
            "no triggering message recorded", extended_state.conversation_key
        )
    return extended_state.message.text


class AnyCommandGuard(Guard):
    """True iff the inbound message text starts with the command prefix."""

    description = "any command"

    def evaluate(self, extended_state: ExtendedState) -> bool:
        return _message_text(extended_state).startswith(COMMAND_PREFIX)


class CommandGuard(Guard):
    """True iff the inbound message text starts with ``/<command>``.

    The match is a plain prefix test, so ``/hellothere`` satisfies
    ``CommandGuard("hello")``.
    """

    def __init__(self, command: str):
        if not command:
            raise ValueError("command must be a non-empty string")
        self.command = command
        self.description = f"{COMMAND_PREFIX}{command}"

    def evaluate(self, extended_state: ExtendedState) -> bool:
        return _message_text(extended_state).startswith(f"{COMMAND_PREFIX}{self.command}")

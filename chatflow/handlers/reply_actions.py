"""Reply actions run by the conversation machine.

Each action reads the triggering message from the extended state and replies
through the sender held by its ActionContext. Exceptions are left to the
engine, which turns them into the action's error event.
"""

from chatflow.config.constants import GREETING_TEMPLATE, NAME_PROMPT_TEXT, PARSE_ERROR_TEXT
from chatflow.config.logging_config import configure_logging
from chatflow.exceptions import ActionError
from chatflow.fsm.actions import ActionContext
from chatflow.handlers.command_classifier import command_arguments
from chatflow.models.conversation import Event

logger = configure_logging("reply_actions")


async def send_name_prompt(context: ActionContext) -> None:
    """Ask the user for their name."""
    await context.reply(NAME_PROMPT_TEXT)


async def send_greeting(context: ActionContext) -> None:
    """Greet the user, taking the received text as their name."""
    name = context.text.strip()
    if not name:
        raise ActionError("received an empty name", context.conversation_key)
    await context.reply(GREETING_TEMPLATE.format(name=name))
    context.emit(Event.RESPONSE_SENT)


async def send_echo(context: ActionContext) -> None:
    """Echo the text following the command token verbatim."""
    payload = command_arguments(context.text)
    if not payload:
        raise ActionError("nothing to echo after the command", context.conversation_key)
    logger.debug(f"[{context.conversation_key}] Echoing {len(payload)} characters")
    await context.reply(payload)
    context.emit(Event.RESPONSE_SENT)


async def send_parse_error(context: ActionContext) -> None:
    """Tell the user the command was not understood."""
    await context.reply(PARSE_ERROR_TEXT)

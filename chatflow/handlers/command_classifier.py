"""Maps inbound chat messages to state machine events.

Every received message is classified as ``TEXT_RECEIVED``; the message kind
is not discriminated yet. Command routing happens later, in the guards of the
choice state, which read the command token from the message text.
"""

import re
from typing import Optional

from chatflow.config.constants import COMMAND_PREFIX
from chatflow.models.conversation import Event, InboundMessage

# Token is whatever non-whitespace directly follows the prefix; arguments
# start after the whitespace that separates them from it.
_COMMAND_PATTERN = re.compile(rf"{re.escape(COMMAND_PREFIX)}(\S*)\s*(.*)", re.DOTALL)


def classify(message: InboundMessage) -> Event:
    """Return the event an inbound message triggers."""
    return Event.TEXT_RECEIVED


def extract_command_token(text: Optional[str]) -> Optional[str]:
    """Return the command directly following a leading ``/``.

    A Telegram ``@botname`` suffix is dropped, so ``/hello@my_bot`` yields
    ``hello``.

    Returns:
        The command token, an empty string for a bare ``/`` (or ``/``
        followed by whitespace), or None if the text is not a command
    """
    if not text:
        return None
    match = _COMMAND_PATTERN.match(text)
    if match is None:
        return None
    return match.group(1).split("@", 1)[0]


def command_arguments(text: Optional[str]) -> str:
    """Return the text after the command token and its separating whitespace.

    The rest is kept verbatim: ``/another foo bar  `` yields ``foo bar  ``.
    Non-command text is returned unchanged.
    """
    if not text:
        return ""
    match = _COMMAND_PATTERN.match(text)
    if match is None:
        return text
    return match.group(2)

"""The bot's conversation machine.

    Idle --TextReceived[any command]--> (AwaitingCommand)
    (AwaitingCommand) --[/hello]--> HelloFlowPrompting       entry: name prompt
    (AwaitingCommand) --[/another]--> EchoFlow               entry: echo, emits ResponseSent
    (AwaitingCommand) --[default]--> Idle                    action: parse error
    HelloFlowPrompting --TextReceived--> HelloFlowAwaitingName   entry: greeting, emits ResponseSent
    HelloFlowAwaitingName --TextReceived--> Ended
    HelloFlowAwaitingName --ResponseSent--> Ended
    HelloFlowAwaitingName --InvalidInput--> HelloFlowPrompting
    EchoFlow --ResponseSent--> Ended
    EchoFlow --InvalidInput--> Ended
"""

from chatflow.config.constants import ECHO_COMMAND, HELLO_COMMAND
from chatflow.fsm.actions import Action
from chatflow.fsm.guards import AnyCommandGuard, CommandGuard
from chatflow.fsm.transitions import ChoiceBranch, TransitionTable, TransitionTableBuilder
from chatflow.handlers.reply_actions import (
    send_echo,
    send_greeting,
    send_name_prompt,
    send_parse_error,
)
from chatflow.models.conversation import Event, State


def build_conversation_table() -> TransitionTable:
    """Build and validate the conversation transition table.

    Raises:
        ConfigurationError: If the table is inconsistent
    """
    builder = TransitionTableBuilder(State)
    builder.initial(State.IDLE).end(State.ENDED)

    builder.on_entry(State.HELLO_FLOW_PROMPTING, Action(send_name_prompt))
    builder.on_entry(State.HELLO_FLOW_AWAITING_NAME, Action(send_greeting))
    builder.on_entry(State.ECHO_FLOW, Action(send_echo))

    builder.transition(
        State.IDLE, Event.TEXT_RECEIVED, State.AWAITING_COMMAND, guard=AnyCommandGuard()
    )
    builder.choice(
        State.AWAITING_COMMAND,
        branches=[
            ChoiceBranch(State.HELLO_FLOW_PROMPTING, guard=CommandGuard(HELLO_COMMAND)),
            ChoiceBranch(State.ECHO_FLOW, guard=CommandGuard(ECHO_COMMAND)),
        ],
        default=ChoiceBranch(State.IDLE, action=Action(send_parse_error)),
    )

    builder.transition(
        State.HELLO_FLOW_PROMPTING, Event.TEXT_RECEIVED, State.HELLO_FLOW_AWAITING_NAME
    )
    builder.transition(State.HELLO_FLOW_AWAITING_NAME, Event.TEXT_RECEIVED, State.ENDED)
    builder.transition(State.HELLO_FLOW_AWAITING_NAME, Event.RESPONSE_SENT, State.ENDED)
    builder.transition(
        State.HELLO_FLOW_AWAITING_NAME, Event.INVALID_INPUT, State.HELLO_FLOW_PROMPTING
    )

    builder.transition(State.ECHO_FLOW, Event.RESPONSE_SENT, State.ENDED)
    builder.transition(State.ECHO_FLOW, Event.INVALID_INPUT, State.ENDED)

    return builder.build()

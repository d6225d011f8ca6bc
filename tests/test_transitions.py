"""Tests for transition table construction and validation."""

import unittest
from enum import Enum

from chatflow.exceptions import ConfigurationError
from chatflow.fsm.actions import Action
from chatflow.fsm.conversation_machine import build_conversation_table
from chatflow.fsm.guards import AnyCommandGuard, CommandGuard
from chatflow.fsm.transitions import ChoiceBranch, TransitionTableBuilder
from chatflow.models.conversation import Event, ExtendedState, InboundMessage, State


class Light(Enum):
    OFF = "off"
    DECIDE = "decide"
    ON = "on"
    BROKEN = "broken"
    OTHER_DECIDE = "other_decide"


class Stranger(Enum):
    NOWHERE = "nowhere"


def always(extended_state):
    return True


def noop(context):
    return None


def base_builder():
    builder = TransitionTableBuilder(Light)
    builder.initial(Light.OFF).end(Light.BROKEN)
    return builder


class TestTransitionTableBuilder(unittest.TestCase):
    """build() rejects inconsistent tables"""

    def test_minimal_table_builds(self):
        table = base_builder().transition(Light.OFF, Event.TEXT_RECEIVED, Light.ON).build()
        self.assertEqual(table.initial, Light.OFF)
        self.assertTrue(table.is_terminal(Light.BROKEN))
        self.assertEqual(len(table), 1)
        self.assertEqual(table.find(Light.OFF, Event.TEXT_RECEIVED).target, Light.ON)
        self.assertIsNone(table.find(Light.ON, Event.TEXT_RECEIVED))

    def test_missing_initial_state(self):
        builder = TransitionTableBuilder(Light)
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_ambiguous_transitions(self):
        builder = base_builder()
        builder.transition(Light.OFF, Event.TEXT_RECEIVED, Light.ON)
        builder.transition(Light.OFF, Event.TEXT_RECEIVED, Light.BROKEN, guard=always)
        with self.assertRaises(ConfigurationError) as ctx:
            builder.build()
        self.assertIn("ambiguous", str(ctx.exception))

    def test_choice_without_default(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [ChoiceBranch(Light.ON, guard=always)])
        with self.assertRaises(ConfigurationError) as ctx:
            builder.build()
        self.assertIn("no default", str(ctx.exception))

    def test_unguarded_choice_branch(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [ChoiceBranch(Light.ON)], default=ChoiceBranch(Light.OFF))
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_unknown_state(self):
        builder = base_builder()
        builder.transition(Light.OFF, Event.TEXT_RECEIVED, Stranger.NOWHERE)
        with self.assertRaises(ConfigurationError) as ctx:
            builder.build()
        self.assertIn("unknown state", str(ctx.exception))

    def test_choice_cannot_be_a_source(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.OFF))
        builder.transition(Light.DECIDE, Event.TEXT_RECEIVED, Light.ON)
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_terminal_state_has_no_outgoing_transitions(self):
        builder = base_builder()
        builder.transition(Light.BROKEN, Event.TEXT_RECEIVED, Light.OFF)
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_choice_cannot_lead_to_choice(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.OTHER_DECIDE))
        builder.choice(Light.OTHER_DECIDE, [], default=ChoiceBranch(Light.OFF))
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_duplicate_choice(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.OFF))
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.ON))
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_initial_state_must_be_regular(self):
        builder = TransitionTableBuilder(Light)
        builder.initial(Light.DECIDE)
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.OFF))
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_duplicate_entry_action(self):
        builder = base_builder()
        builder.on_entry(Light.ON, Action(noop)).on_entry(Light.ON, Action(noop))
        with self.assertRaises(ConfigurationError):
            builder.build()

    def test_choice_entry_action_rejected(self):
        builder = base_builder()
        builder.choice(Light.DECIDE, [], default=ChoiceBranch(Light.OFF))
        builder.on_entry(Light.DECIDE, Action(noop))
        with self.assertRaises(ConfigurationError):
            builder.build()


class TestChoice(unittest.TestCase):
    """Choice.select() takes the first matching branch, else the default"""

    def setUp(self):
        builder = base_builder()
        builder.choice(
            Light.DECIDE,
            [
                ChoiceBranch(Light.ON, guard=CommandGuard("on")),
                ChoiceBranch(Light.BROKEN, guard=AnyCommandGuard()),
            ],
            default=ChoiceBranch(Light.OFF),
        )
        self.choice = builder.build().choice(Light.DECIDE)

    def select(self, text):
        state = ExtendedState(conversation_key="1")
        state.record(InboundMessage(chat_key="1", sender="u", text=text, message_id=1))
        return self.choice.select(state).target

    def test_first_matching_branch_wins(self):
        self.assertEqual(self.select("/on"), Light.ON)

    def test_later_branch(self):
        self.assertEqual(self.select("/off"), Light.BROKEN)

    def test_default(self):
        self.assertEqual(self.select("off"), Light.OFF)


class TestConversationTable(unittest.TestCase):
    """The bot's machine builds and has the expected shape"""

    def setUp(self):
        self.table = build_conversation_table()

    def test_initial_and_terminal(self):
        self.assertEqual(self.table.initial, State.IDLE)
        self.assertTrue(self.table.is_terminal(State.ENDED))
        self.assertFalse(self.table.is_terminal(State.IDLE))

    def test_awaiting_command_is_a_choice(self):
        self.assertTrue(self.table.is_choice(State.AWAITING_COMMAND))
        choice = self.table.choice(State.AWAITING_COMMAND)
        self.assertEqual(
            [branch.target for branch in choice.branches],
            [State.HELLO_FLOW_PROMPTING, State.ECHO_FLOW],
        )
        self.assertEqual(choice.default.target, State.IDLE)
        self.assertIsNotNone(choice.default.action)

    def test_idle_transition_is_guarded(self):
        transition = self.table.find(State.IDLE, Event.TEXT_RECEIVED)
        self.assertIsInstance(transition.guard, AnyCommandGuard)
        self.assertEqual(transition.target, State.AWAITING_COMMAND)

    def test_flow_states_have_entry_actions(self):
        for state in (State.HELLO_FLOW_PROMPTING, State.HELLO_FLOW_AWAITING_NAME, State.ECHO_FLOW):
            self.assertIsNotNone(self.table.entry_action(state), state)
        self.assertIsNone(self.table.entry_action(State.IDLE))

    def test_no_transitions_out_of_ended(self):
        for event in Event:
            self.assertIsNone(self.table.find(State.ENDED, event))

"""Tests for transition guards."""

import unittest

from chatflow.exceptions import GuardEvaluationError
from chatflow.fsm.guards import AnyCommandGuard, CommandGuard, Guard
from chatflow.models.conversation import ExtendedState, InboundMessage


def state_with(text):
    state = ExtendedState(conversation_key="42")
    state.record(InboundMessage(chat_key="42", sender="u", text=text, message_id=1))
    return state


class TestAnyCommandGuard(unittest.TestCase):
    """Tests for AnyCommandGuard"""

    def setUp(self):
        self.guard = AnyCommandGuard()

    def test_accepts_commands(self):
        self.assertTrue(self.guard(state_with("/hello")))
        self.assertTrue(self.guard(state_with("/")))

    def test_rejects_plain_text(self):
        self.assertFalse(self.guard(state_with("hi")))
        self.assertFalse(self.guard(state_with("")))

    def test_missing_message_raises(self):
        with self.assertRaises(GuardEvaluationError) as ctx:
            self.guard(ExtendedState(conversation_key="42"))
        self.assertEqual(ctx.exception.conversation_key, "42")

    def test_does_not_mutate_state(self):
        state = state_with("/hello")
        before = (state.message, state.messages_seen, state.updated_at)
        self.guard(state)
        self.assertEqual((state.message, state.messages_seen, state.updated_at), before)


class TestCommandGuard(unittest.TestCase):
    """Tests for CommandGuard"""

    def test_matches_named_command(self):
        guard = CommandGuard("hello")
        self.assertTrue(guard(state_with("/hello")))
        self.assertTrue(guard(state_with("/hello there")))

    def test_matches_by_prefix(self):
        self.assertTrue(CommandGuard("hello")(state_with("/hellothere")))

    def test_rejects_other_commands(self):
        guard = CommandGuard("hello")
        self.assertFalse(guard(state_with("/another")))
        self.assertFalse(guard(state_with("/Hello")))
        self.assertFalse(guard(state_with("hello")))

    def test_empty_command_rejected(self):
        with self.assertRaises(ValueError):
            CommandGuard("")

    def test_missing_message_raises(self):
        with self.assertRaises(GuardEvaluationError):
            CommandGuard("hello").evaluate(ExtendedState(conversation_key="1"))

    def test_repr_names_the_command(self):
        self.assertEqual(repr(CommandGuard("another")), "CommandGuard(/another)")


class TestGuardBase(unittest.TestCase):
    def test_base_guard_is_abstract(self):
        with self.assertRaises(NotImplementedError):
            Guard().evaluate(ExtendedState(conversation_key="1"))

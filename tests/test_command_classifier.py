"""Tests for command classification and token extraction."""

import unittest

from chatflow.fsm.guards import CommandGuard
from chatflow.handlers.command_classifier import classify, command_arguments, extract_command_token
from chatflow.models.conversation import Event, ExtendedState, InboundMessage


class TestClassify(unittest.TestCase):
    """classify() maps every received message to TEXT_RECEIVED"""

    def test_command_is_text_received(self):
        message = InboundMessage(chat_key="1", sender="u", text="/hello", message_id=1)
        self.assertEqual(classify(message), Event.TEXT_RECEIVED)

    def test_plain_and_empty_text_are_text_received(self):
        for text in ("hi", "", "   "):
            message = InboundMessage(chat_key="1", sender="u", text=text, message_id=1)
            self.assertEqual(classify(message), Event.TEXT_RECEIVED)


class TestExtractCommandToken(unittest.TestCase):
    """Tests for extract_command_token"""

    def test_simple_command(self):
        self.assertEqual(extract_command_token("/hello"), "hello")

    def test_command_with_arguments(self):
        self.assertEqual(extract_command_token("/another foo bar"), "another")

    def test_bot_name_suffix_is_dropped(self):
        self.assertEqual(extract_command_token("/hello@my_bot"), "hello")

    def test_non_command_returns_none(self):
        self.assertIsNone(extract_command_token("hello"))
        self.assertIsNone(extract_command_token(" /hello"))

    def test_empty_and_none(self):
        self.assertIsNone(extract_command_token(""))
        self.assertIsNone(extract_command_token(None))

    def test_bare_prefix(self):
        self.assertEqual(extract_command_token("/"), "")

    def test_whitespace_after_prefix_is_not_a_token(self):
        self.assertEqual(extract_command_token("/ hello"), "")
        self.assertEqual(extract_command_token("/\nhello"), "")

    def test_token_agrees_with_command_guard(self):
        state = ExtendedState(conversation_key="1")
        for text in ("/hello", "/ hello", "/hello there", "/another hello"):
            state.record(InboundMessage(chat_key="1", sender="u", text=text, message_id=1))
            self.assertEqual(
                CommandGuard("hello")(state),
                extract_command_token(text) == "hello",
                text,
            )


class TestCommandArguments(unittest.TestCase):
    """Tests for command_arguments"""

    def test_arguments_after_token(self):
        self.assertEqual(command_arguments("/another foo bar"), "foo bar")

    def test_separator_is_dropped_and_rest_kept_verbatim(self):
        self.assertEqual(command_arguments("/another    foo  bar  "), "foo  bar  ")
        self.assertEqual(command_arguments("/another foo bar  "), "foo bar  ")

    def test_multiline_arguments(self):
        self.assertEqual(command_arguments("/another line one\nline two"), "line one\nline two")

    def test_no_arguments(self):
        self.assertEqual(command_arguments("/another"), "")

    def test_non_command_text(self):
        self.assertEqual(command_arguments(" plain text "), " plain text ")
        self.assertEqual(command_arguments(None), "")

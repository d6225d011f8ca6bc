"""Tests for the Telegram Bot API models."""

import unittest

from pydantic import ValidationError

from chatflow.models.telegram_api import GetUpdatesResponse, TelegramUpdate, TelegramUser


class TestTelegramUser(unittest.TestCase):
    def test_display_name_prefers_username(self):
        user = TelegramUser(id=1, first_name="Gleb", username="gleb_b")
        self.assertEqual(user.display_name, "gleb_b")

    def test_display_name_full_name(self):
        user = TelegramUser(id=1, first_name="Gleb", last_name="B")
        self.assertEqual(user.display_name, "Gleb B")

    def test_display_name_falls_back_to_id(self):
        self.assertEqual(TelegramUser(id=77).display_name, "77")


class TestTelegramUpdate(unittest.TestCase):
    """Tests for TelegramUpdate parsing and conversion"""

    def test_text_message_to_inbound(self):
        update = TelegramUpdate.model_validate(
            {
                "update_id": 5,
                "message": {
                    "message_id": 9,
                    "date": 1700000000,
                    "chat": {"id": -100123, "type": "group", "title": "chat"},
                    "from": {"id": 3, "is_bot": False, "first_name": "Ann"},
                    "text": "/hello",
                    "entities": [{"type": "bot_command", "offset": 0, "length": 6}],
                },
            }
        )

        message = update.to_inbound()

        self.assertEqual(message.chat_key, "-100123")
        self.assertEqual(message.sender, "Ann")
        self.assertEqual(message.text, "/hello")
        self.assertEqual(message.message_id, 9)
        self.assertEqual(message.update_id, 5)

    def test_caption_used_when_no_text(self):
        update = TelegramUpdate.model_validate(
            {
                "update_id": 1,
                "message": {"message_id": 1, "chat": {"id": 1}, "caption": "/another pic"},
            }
        )
        self.assertEqual(update.to_inbound().text, "/another pic")

    def test_non_text_message_maps_to_empty_text(self):
        update = TelegramUpdate.model_validate(
            {
                "update_id": 1,
                "message": {"message_id": 1, "chat": {"id": 1}, "sticker": {"file_id": "x"}},
            }
        )
        message = update.to_inbound()
        self.assertEqual(message.text, "")
        self.assertEqual(message.sender, "1")

    def test_edited_message_is_routed(self):
        update = TelegramUpdate.model_validate(
            {
                "update_id": 2,
                "edited_message": {"message_id": 4, "chat": {"id": 8}, "text": "Gleb"},
            }
        )
        self.assertEqual(update.to_inbound().chat_key, "8")

    def test_update_without_message(self):
        update = TelegramUpdate.model_validate({"update_id": 3, "callback_query": {"id": "q"}})
        self.assertIsNone(update.effective_message)
        self.assertIsNone(update.to_inbound())

    def test_missing_chat_is_invalid(self):
        with self.assertRaises(ValidationError):
            TelegramUpdate.model_validate({"update_id": 3, "message": {"message_id": 1}})


class TestGetUpdatesResponse(unittest.TestCase):
    def test_defaults(self):
        response = GetUpdatesResponse(ok=True)
        self.assertEqual(response.result, [])
        self.assertIsNone(response.description)

"""
Pydantic models for the subset of the Telegram Bot API the bot consumes.

Only the fields needed to route a message are modeled; everything else in an
``Update`` payload is ignored. Both the long-polling ``getUpdates`` response
and webhook request bodies carry the same ``Update`` objects.

Reference: https://core.telegram.org/bots/api#update
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from chatflow.models.conversation import InboundMessage


class TelegramUser(BaseModel):
    """Author of a message."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Unique identifier for this user or bot")
    is_bot: bool = False
    first_name: str = ""
    last_name: Optional[str] = None
    username: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.username:
            return self.username
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or str(self.id)


class TelegramChat(BaseModel):
    """Chat a message belongs to. Its id is the conversation key."""

    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Unique identifier for this chat")
    type: str = Field(default="private", description="private, group, supergroup or channel")
    title: Optional[str] = None
    username: Optional[str] = None


class TelegramMessage(BaseModel):
    """A message inside an update."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message_id: int
    chat: TelegramChat
    date: int = 0
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None
    caption: Optional[str] = None


class TelegramUpdate(BaseModel):
    """An incoming update.

    ``message`` is set for new messages, ``edited_message`` for edits. Other
    update kinds (callback queries, polls, ...) leave both unset.
    """

    model_config = ConfigDict(extra="ignore")

    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None

    @property
    def effective_message(self) -> Optional[TelegramMessage]:
        return self.message or self.edited_message

    def to_inbound(self) -> Optional[InboundMessage]:
        """Convert to the core message record.

        Returns None when the update carries no message, since there is then
        no conversation to route it to. Non-text messages map to empty text.
        """
        message = self.effective_message
        if message is None:
            return None

        sender = message.from_user.display_name if message.from_user else str(message.chat.id)
        return InboundMessage(
            chat_key=str(message.chat.id),
            sender=sender,
            text=message.text or message.caption or "",
            message_id=message.message_id,
            update_id=self.update_id,
        )


class GetUpdatesResponse(BaseModel):
    """Envelope returned by ``getUpdates``."""

    model_config = ConfigDict(extra="ignore")

    ok: bool
    result: List[Dict[str, Any]] = Field(default_factory=list)
    description: Optional[str] = None

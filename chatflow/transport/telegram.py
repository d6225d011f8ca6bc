"""Telegram Bot API adapters.

TelegramBotClient wraps the two Bot API methods the bot needs. The reply
sender and the long-polling update source are built on top of it. Requests
use an ``httpx.AsyncClient`` with explicit timeouts so a slow API call can
never block a conversation forever.

Reference: https://core.telegram.org/bots/api
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import ValidationError

from chatflow.config.constants import (
    DEFAULT_POLL_BACKOFF,
    DEFAULT_POLL_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TELEGRAM_API_BASE_URL,
)
from chatflow.config.logging_config import configure_logging
from chatflow.config.models import TelegramConfig
from chatflow.exceptions import SendError, TransportError
from chatflow.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from chatflow.models.conversation import InboundMessage
from chatflow.models.telegram_api import GetUpdatesResponse, TelegramUpdate
from chatflow.transport.base import ReplySender, UpdateSource

logger = configure_logging("telegram")


class TelegramBotClient:
    """Minimal async client for the Telegram Bot API.

    Args:
        api_token: Bot token; never logged
        base_url: API root, without the ``/bot<token>`` part
        request_timeout: Timeout in seconds for regular requests
        client: Optional preconfigured httpx client (closed by ``close``)
    """

    def __init__(
        self,
        api_token: str,
        base_url: str = DEFAULT_TELEGRAM_API_BASE_URL,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_token:
            raise ValueError("api_token must be a non-empty string")
        self._api_url = f"{base_url.rstrip('/')}/bot{api_token}"
        self.request_timeout = request_timeout
        self._client = client or httpx.AsyncClient()

    @classmethod
    def from_config(cls, config: TelegramConfig) -> "TelegramBotClient":
        if not config.api_token:
            raise ValueError("TELEGRAM_API_TOKEN is not set")
        return cls(config.api_token, config.base_url, config.request_timeout)

    async def call(
        self, method: str, payload: Dict[str, Any], timeout: Optional[float] = None
    ) -> Any:
        """Call a Bot API method and return its ``result``.

        Raises:
            TransportError: On network failure, a non-JSON body or ``ok: false``
        """
        try:
            response = await self._client.post(
                f"{self._api_url}/{method}",
                json=payload,
                timeout=timeout if timeout is not None else self.request_timeout,
            )
        except httpx.HTTPError as e:
            # The request URL embeds the token, so only the error type is reported
            raise TransportError(f"{method} failed: {type(e).__name__}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(
                f"{method} returned a non-JSON body", status_code=response.status_code
            ) from e

        if response.status_code != 200 or not data.get("ok", False):
            description = data.get("description", "unknown error")
            raise TransportError(
                f"{method} rejected: {description}", status_code=response.status_code
            )
        return data.get("result")

    async def send_message(self, chat_id: str, text: str) -> Dict[str, Any]:
        return await self.call("sendMessage", {"chat_id": chat_id, "text": text})

    async def get_updates(
        self,
        offset: Optional[int] = None,
        timeout: int = DEFAULT_POLL_TIMEOUT,
        allowed_updates: Optional[List[str]] = None,
    ) -> GetUpdatesResponse:
        payload: Dict[str, Any] = {"timeout": timeout}
        if offset is not None:
            payload["offset"] = offset
        if allowed_updates:
            payload["allowed_updates"] = allowed_updates

        result = await self.call(
            "getUpdates", payload, timeout=timeout + self.request_timeout
        )
        return GetUpdatesResponse(ok=True, result=result or [])

    async def close(self) -> None:
        await self._client.aclose()


class TelegramReplySender(ReplySender):
    """ReplySender that delivers messages with ``sendMessage``."""

    def __init__(self, client: TelegramBotClient):
        self.client = client

    async def send(self, conversation_key: str, text: str) -> None:
        try:
            await self.client.send_message(conversation_key, text)
        except TransportError as e:
            raise SendError(e.message, conversation_key, e.status_code) from e

    async def close(self) -> None:
        await self.client.close()


class TelegramPollingSource(UpdateSource):
    """Long-polling UpdateSource backed by ``getUpdates``.

    Acknowledging a batch moves the offset past every update fetched with it,
    including updates that were skipped because they carried no message.
    Failed polls and malformed updates are reported to the error handler;
    failed polls are retried after ``poll_backoff`` seconds.
    """

    def __init__(
        self,
        client: TelegramBotClient,
        poll_timeout: int = DEFAULT_POLL_TIMEOUT,
        poll_backoff: float = DEFAULT_POLL_BACKOFF,
        allowed_updates: Optional[List[str]] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.client = client
        self.error_handler = error_handler or get_error_handler()
        self.poll_timeout = poll_timeout
        self.poll_backoff = poll_backoff
        self.allowed_updates = allowed_updates
        self.offset: Optional[int] = None
        self._pending_offset: Optional[int] = None
        self._closed = False

    async def batches(self) -> AsyncIterator[List[InboundMessage]]:
        while not self._closed:
            try:
                response = await self.client.get_updates(
                    offset=self.offset,
                    timeout=self.poll_timeout,
                    allowed_updates=self.allowed_updates,
                )
            except TransportError as e:
                await self.error_handler.handle_error(
                    e,
                    context=ErrorContext.TRANSPORT,
                    severity=ErrorSeverity.MEDIUM,
                    operation="getUpdates",
                    retry_in=self.poll_backoff,
                )
                await asyncio.sleep(self.poll_backoff)
                continue

            if not response.result:
                continue

            logger.info(f"Got {len(response.result)} updates")
            yield await self._parse(response.result)

    async def _parse(self, raw_updates: List[Dict[str, Any]]) -> List[InboundMessage]:
        batch: List[InboundMessage] = []
        for raw in raw_updates:
            update_id = raw.get("update_id")
            if isinstance(update_id, int):
                next_offset = update_id + 1
                if self._pending_offset is None or next_offset > self._pending_offset:
                    self._pending_offset = next_offset

            try:
                update = TelegramUpdate.model_validate(raw)
            except ValidationError as e:
                await self.error_handler.handle_error(
                    e,
                    context=ErrorContext.CLASSIFICATION,
                    severity=ErrorSeverity.MEDIUM,
                    operation="parse_update",
                    update_id=update_id,
                )
                continue

            message = update.to_inbound()
            if message is None:
                logger.debug(f"Skipping update {update_id} without a message")
                continue
            batch.append(message)
        return batch

    async def acknowledge(self, batch: List[InboundMessage]) -> None:
        if self._pending_offset is not None:
            self.offset = self._pending_offset

    async def close(self) -> None:
        self._closed = True
        await self.client.close()

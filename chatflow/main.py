"""
FastAPI server receiving Telegram updates through a webhook.

The webhook endpoint validates each Update, converts it to an inbound message
and queues it; a background dispatcher consumes the queue and drives the
conversations. Telegram expects a quick 2xx, so the endpoint never waits for
the conversation to be processed.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from pydantic import ValidationError

from chatflow.bot import ChatBot
from chatflow.config.logging_config import configure_logging
from chatflow.config.models import ApplicationConfig
from chatflow.handlers.error_handler import ErrorContext, ErrorSeverity
from chatflow.models.telegram_api import TelegramUpdate
from chatflow.transport.base import ReplySender
from chatflow.transport.local import QueueUpdateSource
from chatflow.transport.telegram import TelegramBotClient, TelegramReplySender

logger = configure_logging("main")

SECRET_TOKEN_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def create_app(
    config: Optional[ApplicationConfig] = None,
    sender: Optional[ReplySender] = None,
) -> FastAPI:
    """Create the webhook application.

    Args:
        config: Application configuration; defaults are used when omitted
        sender: Reply sender; a Telegram sender is built from the config when omitted
    """
    config = config or ApplicationConfig()
    if sender is None:
        sender = TelegramReplySender(TelegramBotClient.from_config(config.telegram))

    bot = ChatBot.create(sender, config)
    source = QueueUpdateSource()
    dispatcher = bot.dispatcher(source)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bot.start()
        task = asyncio.create_task(dispatcher.run())
        logger.info("Webhook server started")
        try:
            yield
        finally:
            await dispatcher.stop()
            await task
            await bot.stop()
            logger.info("Webhook server stopped")

    app = FastAPI(
        title="chatflow",
        description="Telegram webhook driving per-conversation state machines",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.bot = bot
    app.state.source = source
    app.state.dispatcher = dispatcher

    @app.post("/webhook")
    async def webhook(
        request: Request,
        secret_token: Optional[str] = Header(default=None, alias=SECRET_TOKEN_HEADER),
    ):
        """Receive one Telegram Update."""
        if config.telegram.webhook_secret and secret_token != config.telegram.webhook_secret:
            logger.warning("Rejected webhook call with a wrong secret token")
            raise HTTPException(status_code=403, detail="Forbidden")

        try:
            update = TelegramUpdate.model_validate(await request.json())
        except (ValidationError, ValueError) as e:
            # Telegram redelivers on errors; a malformed update would never succeed
            await bot.error_handler.handle_error(
                e,
                context=ErrorContext.CLASSIFICATION,
                severity=ErrorSeverity.MEDIUM,
                operation="webhook",
            )
            return {"ok": True, "queued": False}

        message = update.to_inbound()
        if message is None:
            logger.debug(f"Ignoring update {update.update_id} without a message")
            return {"ok": True, "queued": False}

        await source.put(message)
        return {"ok": True, "queued": True}

    @app.get("/health")
    async def health():
        """Report registry, processing and error statistics."""
        stats = bot.get_stats()
        stats["dispatcher"] = dispatcher.get_stats()
        stats["queued_updates"] = source.qsize()
        stats["status"] = "ok" if dispatcher.running else "stopped"
        return stats

    return app

"""
Run script for the chatflow Telegram bot.

Usage:
    python run.py [--mode {polling,webhook,console}] [--env-file PATH] [--host HOST] [--port PORT]

Modes:
    polling  - long-poll the Bot API with getUpdates (default)
    webhook  - serve POST /webhook with uvicorn; register the URL with setWebhook yourself
    console  - read messages from stdin and print replies, no network access

Environment Variables:
    TELEGRAM_API_TOKEN=token         - Bot token (required for polling and webhook)
    TELEGRAM_WEBHOOK_SECRET=secret   - Expected X-Telegram-Bot-Api-Secret-Token value
    ENGINE_MAX_CHAINED_EVENTS=16     - Synthetic events allowed per update
    REGISTRY_IDLE_TIMEOUT=seconds    - Evict idle conversations (disabled when unset)
    HOST=host / PORT=port            - Webhook server address
    LOG_LEVEL=level                  - Logging level (default: INFO)

Examples:
    # Long polling
    TELEGRAM_API_TOKEN=123:abc python run.py

    # Try the conversation flows locally
    python run.py --mode console
"""

import argparse
import asyncio
import sys
from typing import Optional

import uvicorn

from chatflow.bot import ChatBot
from chatflow.config import get_config
from chatflow.config.env_loader import load_env_file
from chatflow.config.logging_config import configure_logging
from chatflow.config.models import ApplicationConfig
from chatflow.handlers.error_handler import ErrorHandler
from chatflow.main import create_app
from chatflow.transport.base import ReplySender, UpdateSource
from chatflow.transport.local import ConsoleReplySender, ConsoleUpdateSource
from chatflow.transport.telegram import (
    TelegramBotClient,
    TelegramPollingSource,
    TelegramReplySender,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the chatflow Telegram bot")
    parser.add_argument(
        "--mode",
        choices=["polling", "webhook", "console"],
        default="polling",
        help="How updates are received (default: polling)",
    )
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    parser.add_argument("--host", default=None, help="Webhook server host")
    parser.add_argument("--port", type=int, default=None, help="Webhook server port")
    return parser.parse_args()


async def run_bot(
    sender: ReplySender,
    source: UpdateSource,
    config: ApplicationConfig,
    error_handler: Optional[ErrorHandler] = None,
) -> None:
    """Run the dispatcher until the source is exhausted or the task is cancelled."""
    bot = ChatBot.create(sender, config, error_handler)
    dispatcher = bot.dispatcher(source)
    await bot.start()
    try:
        await dispatcher.run()
    finally:
        await source.close()
        await bot.stop()


def main() -> int:
    args = parse_args()

    load_env_file(args.env_file)
    config = get_config()
    logger = configure_logging("run", config.logging.log_dir, config.logging.log_filename)

    if args.mode == "console":
        logger.info("Starting console mode; type /hello or /another <text>")
        asyncio.run(run_bot(ConsoleReplySender(), ConsoleUpdateSource(), config))
        return 0

    if not config.telegram.api_token:
        logger.error("TELEGRAM_API_TOKEN is required for polling and webhook modes")
        return 1

    if args.mode == "webhook":
        host = args.host or config.server.host
        port = args.port or config.server.port
        logger.info(f"Starting webhook server on {host}:{port}")
        uvicorn.run(
            create_app(config),
            host=host,
            port=port,
            access_log=config.server.access_log,
            log_level="debug" if config.is_development() else "info",
        )
        return 0

    logger.info("Starting long polling")
    error_handler = ErrorHandler()
    client = TelegramBotClient.from_config(config.telegram)
    source = TelegramPollingSource(
        client,
        poll_timeout=config.telegram.poll_timeout,
        poll_backoff=config.telegram.poll_backoff,
        allowed_updates=config.telegram.allowed_updates,
        error_handler=error_handler,
    )
    sender = TelegramReplySender(TelegramBotClient.from_config(config.telegram))
    try:
        asyncio.run(run_bot(sender, source, config, error_handler))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Codelens Telegram Bot

Entry point for running the bot. Wires the transport, OCR engine, completion
client, transcript store and delivery together and starts polling.

Usage:
    python -m codelens

Environment Variables:
    TELEGRAM_BOT_TOKEN: Telegram bot token from @BotFather (required)
    DEEPSEEK_API_KEY: API key for the completion service (required)
    LLM_BASE_URL / LLM_MODEL_NAME: Completion endpoint and model (optional)
    OCR_LANGUAGES: Tesseract languages, e.g. "eng+rus" (optional)
    CODELENS_SESSIONS_PATH: Directory for per-chat transcripts (optional)
"""

import logging
import sys
from typing import Optional

from telegram import Update
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from codelens.conversation.delivery import ChunkedDelivery
from codelens.conversation.normalizer import InputNormalizer
from codelens.conversation.orchestrator import ConversationOrchestrator
from codelens.conversation.store import TranscriptStore
from codelens.core.config import Settings, load_settings
from codelens.core.exceptions import ConfigurationError
from codelens.core.llm_client import LLMClient
from codelens.core.logging import setup_logging
from codelens.core.ocr import get_text_extractor
from codelens.interfaces.telegram.channel import TelegramTransport, event_from_update
from codelens.interfaces.telegram.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


class CodelensBot:
    """Telegram bot relaying code questions to the completion service."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.application: Optional[Application] = None
        self.dispatcher: Optional[Dispatcher] = None
        self.delivery: Optional[ChunkedDelivery] = None
        self.llm: Optional[LLMClient] = None
        self.extractor = get_text_extractor()
        self.extractor.ready_timeout = settings.ocr.ready_timeout

    def build(self) -> Application:
        """Create the PTB application and all collaborators."""
        s = self.settings

        self.application = (
            Application.builder()
            .token(s.telegram.bot_token)
            .concurrent_updates(s.telegram.concurrent_updates)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        transport = TelegramTransport(self.application.bot)
        self.llm = LLMClient(
            base_url=s.llm.base_url,
            model_name=s.llm.model_name,
            api_key=s.llm.api_key,
            max_tokens=s.llm.max_tokens,
            temperature=s.llm.temperature,
            timeout=s.llm.timeout,
        )
        self.delivery = ChunkedDelivery(
            transport,
            chunk_size=s.delivery.chunk_size,
            chunk_delay=s.delivery.chunk_delay,
            parse_mode=s.telegram.parse_mode,
        )
        orchestrator = ConversationOrchestrator(
            store=TranscriptStore(s.conversation.sessions_dir),
            completion=self.llm,
            delivery=self.delivery,
            serialize_per_chat=s.conversation.serialize_per_chat,
        )
        normalizer = InputNormalizer(
            transport,
            self.extractor,
            allowed_extensions=s.conversation.allowed_extensions,
            max_prompt_chars=s.conversation.max_prompt_chars,
        )
        self.dispatcher = Dispatcher(
            transport, normalizer, orchestrator, parse_mode=s.telegram.parse_mode
        )

        self.application.add_handler(CommandHandler(["start", "help"], self.start_command))
        self.application.add_handler(MessageHandler(
            filters.TEXT | filters.PHOTO | filters.Document.ALL,
            self.handle_message,
        ))
        self.application.add_error_handler(self.error_handler)
        return self.application

    async def _post_init(self, application: Application) -> None:
        # OCR warms up in the background; image events wait for it
        application.create_task(self.extractor.initialize(self.settings.ocr.languages))

    async def _post_shutdown(self, application: Application) -> None:
        if self.delivery:
            await self.delivery.drain()
        if self.llm:
            await self.llm.aclose()

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start and /help."""
        await self.dispatcher.send_help(update.effective_chat.id)

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle text, photo and document messages."""
        event = event_from_update(update)
        if event is None:
            return
        logger.info(f"[TELEGRAM] Message from chat {event.chat_id} ({event.sender_name})")
        await self.dispatcher.dispatch(event)

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle errors in the bot."""
        logger.error(f"Update {update} caused error: {context.error}")

    def run(self) -> None:
        logger.info("Starting Codelens Telegram Bot...")
        logger.info(f"LLM: {self.settings.llm.base_url} / {self.settings.llm.model_name}")
        application = self.application or self.build()
        logger.info("Bot is running. Press Ctrl+C to stop.")
        application.run_polling(allowed_updates=Update.ALL_TYPES)


def main() -> int:
    """Start the Telegram bot."""
    settings = load_settings()
    setup_logging(settings.logging.level, settings.logging.format, settings.logging.file)

    try:
        settings.validate_required()
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    CodelensBot(settings).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())

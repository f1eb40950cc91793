"""Tests for bot wiring."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from telegram.ext import CommandHandler, MessageHandler

from codelens.core.config import ConversationConfig, LLMConfig, Settings, TelegramConfig
from codelens.interfaces.base import InboundEvent
from codelens.interfaces.telegram.dispatcher import Dispatcher
from codelens.interfaces.telegram.run import CodelensBot


@pytest.fixture
def settings(tmp_path):
    return Settings(
        telegram=TelegramConfig(bot_token="123456:ABC-DEF"),
        llm=LLMConfig(api_key="test-api-key"),
        conversation=ConversationConfig(sessions_dir=tmp_path / "sessions"),
    )


class TestCodelensBot:
    """Tests for CodelensBot."""

    def test_build_registers_handlers(self, settings):
        """/start, /help and one message handler are registered."""
        bot = CodelensBot(settings)

        application = bot.build()

        handlers = application.handlers[0]
        assert any(isinstance(h, CommandHandler) and h.commands == frozenset({"start", "help"}) for h in handlers)
        assert any(isinstance(h, MessageHandler) for h in handlers)
        assert isinstance(bot.dispatcher, Dispatcher)
        assert bot.delivery.chunk_size == 4000
        assert (settings.conversation.sessions_dir).is_dir()

    @pytest.mark.asyncio
    async def test_handle_message_dispatches_event(self, settings):
        """Updates are converted and handed to the dispatcher."""
        bot = CodelensBot(settings)
        bot.dispatcher = MagicMock()
        bot.dispatcher.dispatch = AsyncMock()
        update = MagicMock()
        update.effective_chat.id = 42
        update.effective_message.text = "hello"
        update.effective_message.photo = []
        update.effective_message.document = None

        await bot.handle_message(update, MagicMock())

        event = bot.dispatcher.dispatch.await_args.args[0]
        assert isinstance(event, InboundEvent)
        assert event.chat_id == 42 and event.text == "hello"

    @pytest.mark.asyncio
    async def test_start_command_sends_help(self, settings):
        bot = CodelensBot(settings)
        bot.dispatcher = MagicMock()
        bot.dispatcher.send_help = AsyncMock()
        update = MagicMock()
        update.effective_chat.id = 5

        await bot.start_command(update, MagicMock())

        bot.dispatcher.send_help.assert_awaited_once_with(5)

    @pytest.mark.asyncio
    async def test_post_init_starts_ocr(self, settings):
        """OCR initialization is started in the background at startup."""
        bot = CodelensBot(settings)
        application = MagicMock()

        await bot._post_init(application)

        coro = application.create_task.call_args.args[0]
        assert coro.cr_code.co_name == "initialize"
        coro.close()

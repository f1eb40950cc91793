"""
Telegram Transport Implementation

Sends messages and fetches uploaded files using python-telegram-bot.
"""

import logging
from typing import Optional

from telegram import Bot, Update
from telegram.error import TelegramError

from codelens.core.exceptions import DeliveryError
from codelens.interfaces.base import (
    ChatId, DocumentRef, InboundEvent, PhotoRef, Transport,
)

logger = logging.getLogger(__name__)


class TelegramTransport(Transport):
    """Telegram bot transport."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> None:
        """Send a text message via Telegram."""
        try:
            await self.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)
        except TelegramError as e:
            raise DeliveryError(f"failed to send message to chat {chat_id}: {e}") from e

    async def download_file(self, file_id: str) -> bytes:
        """Resolve ``file_id`` and download its contents."""
        tg_file = await self.bot.get_file(file_id)
        data = await tg_file.download_as_bytearray()
        logger.info(f"[TELEGRAM] Downloaded file {file_id}: {len(data)} bytes")
        return bytes(data)


def event_from_update(update: Update) -> Optional[InboundEvent]:
    """Convert a Telegram update into an InboundEvent."""
    message = update.effective_message
    if message is None or update.effective_chat is None:
        return None

    photo = [
        PhotoRef(
            file_id=size.file_id,
            width=size.width,
            height=size.height,
            file_size=size.file_size,
        )
        for size in (message.photo or ())
    ]

    document = None
    if message.document is not None:
        document = DocumentRef(
            file_id=message.document.file_id,
            file_name=message.document.file_name,
            mime_type=message.document.mime_type,
            file_size=message.document.file_size,
        )

    user = update.effective_user
    return InboundEvent(
        chat_id=update.effective_chat.id,
        text=message.text,
        photo=photo,
        document=document,
        message_id=message.message_id,
        sender_name=user.first_name if user else None,
    )

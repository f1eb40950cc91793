"""
Inbound message dispatcher.

Every event is checked for text, photo and document in turn, and each
present modality runs its own exchange. A message carrying both a caption
text and a photo therefore produces two replies.
"""

import logging
from typing import Optional

from codelens.conversation.normalizer import InputNormalizer, NormalizedInput, Skip
from codelens.conversation.orchestrator import ConversationOrchestrator
from codelens.core.exceptions import NormalizationError, StorageReadError
from codelens.interfaces.base import ChatId, InboundEvent, Modality, Transport

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "🤖 *JS Assistant Bot* powered by DeepSeek-Coder\n\n"
    "I can help with:\n"
    "- Explaining JavaScript code\n"
    "- Reading screenshots of code (OCR)\n"
    "- Finding bugs\n"
    "- Writing examples\n\n"
    "📌 Just send a question, a photo of your code, or a .js/.txt file."
)

PROCESSING_NOTICE = "🧠 Processing your request..."
OCR_NOTICE = "🖼️ Recognizing text from the image..."
FILE_NOTICE = "📄 Reading the file..."
ANALYZING_NOTICE = "🔍 Analyzing the code..."

IMAGE_ERROR_NOTICE = "❌ Error while processing the image."
FILE_ERROR_NOTICE = "❌ Error while reading the file."
HISTORY_ERROR_NOTICE = "❌ Error loading conversation history."
GENERIC_ERROR_NOTICE = "❌ Sorry, something went wrong. Please try again."

ERROR_NOTICES = {
    Modality.TEXT: GENERIC_ERROR_NOTICE,
    Modality.IMAGE: IMAGE_ERROR_NOTICE,
    Modality.DOCUMENT: FILE_ERROR_NOTICE,
}


class Dispatcher:
    """Routes inbound events through normalization into the orchestrator."""

    def __init__(
        self,
        transport: Transport,
        normalizer: InputNormalizer,
        orchestrator: ConversationOrchestrator,
        parse_mode: Optional[str] = None,
    ):
        self.transport = transport
        self.normalizer = normalizer
        self.orchestrator = orchestrator
        self.parse_mode = parse_mode

    async def notify(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> None:
        """Send a courtesy notice. Failures are logged and otherwise ignored."""
        try:
            await self.transport.send_message(chat_id, text, parse_mode=parse_mode)
        except Exception as e:
            logger.warning(f"[TELEGRAM] Notice to chat {chat_id} failed: {e}")

    async def send_help(self, chat_id: ChatId) -> None:
        await self.notify(chat_id, HELP_TEXT, parse_mode=self.parse_mode)

    async def dispatch(self, event: InboundEvent) -> None:
        """Handle every modality present on ``event``."""
        if event.text:
            await self._run(event.chat_id, Modality.TEXT, self._normalize_text(event))
        if event.photo:
            await self._run(event.chat_id, Modality.IMAGE, self._normalize_photo(event))
        if event.document:
            await self._run(event.chat_id, Modality.DOCUMENT, self._normalize_document(event))

    async def _normalize_text(self, event: InboundEvent) -> NormalizedInput:
        result = self.normalizer.from_text(event.text)
        if not isinstance(result, Skip):
            await self.notify(event.chat_id, PROCESSING_NOTICE)
        return result

    async def _normalize_photo(self, event: InboundEvent) -> NormalizedInput:
        await self.notify(event.chat_id, OCR_NOTICE)
        result = await self.normalizer.from_photo(event.photo)
        if not isinstance(result, Skip):
            await self.notify(
                event.chat_id,
                f"```\n{result.source}\n```\n\n{ANALYZING_NOTICE}",
                parse_mode=self.parse_mode,
            )
        return result

    async def _normalize_document(self, event: InboundEvent) -> NormalizedInput:
        if not self.normalizer.is_allowed(event.document.file_name):
            return Skip(reason="unsupported_file")
        await self.notify(event.chat_id, FILE_NOTICE)
        return await self.normalizer.from_document(event.document)

    async def _run(self, chat_id: ChatId, modality: Modality, pending) -> None:
        """Normalize one modality and run its exchange, converting errors to notices."""
        try:
            result = await pending
            if isinstance(result, Skip):
                logger.info(f"[TELEGRAM] Skipping {modality.value} from chat {chat_id}: {result.reason}")
                if result.notice:
                    await self.notify(chat_id, result.notice)
                return

            logger.info(f"[TELEGRAM] {modality.value} exchange for chat {chat_id}: {result.text[:50]}")
            await self.orchestrator.run_exchange(chat_id, result)
        except NormalizationError as e:
            logger.error(f"[TELEGRAM] Normalization failed ({e.modality}) for chat {chat_id}: {e}")
            await self.notify(chat_id, ERROR_NOTICES[modality])
        except StorageReadError as e:
            logger.error(f"[TELEGRAM] Cannot load history for chat {chat_id}: {e}")
            await self.notify(chat_id, HISTORY_ERROR_NOTICE)
        except Exception as e:
            logger.exception(f"[TELEGRAM] Error processing {modality.value} for chat {chat_id}: {e}")
            await self.notify(chat_id, ERROR_NOTICES[modality])

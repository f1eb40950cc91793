"""Unit tests for the inbound message dispatcher."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from codelens.conversation.normalizer import NOT_RECOGNIZED_NOTICE, InputNormalizer
from codelens.conversation.orchestrator import ConversationOrchestrator
from codelens.core.exceptions import ExtractorNotReadyError, StorageReadError
from codelens.core.ocr import RecognitionResult
from codelens.interfaces.base import DocumentRef, InboundEvent, Modality, PhotoRef
from codelens.interfaces.telegram.dispatcher import (
    ANALYZING_NOTICE,
    FILE_ERROR_NOTICE,
    FILE_NOTICE,
    HELP_TEXT,
    HISTORY_ERROR_NOTICE,
    IMAGE_ERROR_NOTICE,
    OCR_NOTICE,
    PROCESSING_NOTICE,
    Dispatcher,
)


@pytest.fixture
def mock_orchestrator():
    mock = MagicMock(spec=ConversationOrchestrator)
    mock.run_exchange = AsyncMock()
    return mock


@pytest.fixture
def dispatcher(transport, mock_extractor, mock_orchestrator):
    normalizer = InputNormalizer(transport, mock_extractor, allowed_extensions=[".js", ".txt"])
    return Dispatcher(transport, normalizer, mock_orchestrator, parse_mode="Markdown")


def photo_event(chat_id=42, text=None):
    return InboundEvent(
        chat_id=chat_id,
        text=text,
        photo=[PhotoRef(file_id="p-small", width=90, height=90), PhotoRef(file_id="p-big", width=800, height=800)],
    )


class TestTextRouting:
    """Tests for text messages."""

    @pytest.mark.asyncio
    async def test_text_runs_exchange(self, dispatcher, transport, mock_orchestrator):
        """A plain text message gets a notice and one exchange."""
        await dispatcher.dispatch(InboundEvent(chat_id=42, text="what does `let` do?"))

        assert transport.texts == [PROCESSING_NOTICE]
        chat_id, art = mock_orchestrator.run_exchange.await_args.args
        assert chat_id == 42
        assert art.text == "what does `let` do?"
        assert art.modality == Modality.TEXT

    @pytest.mark.asyncio
    async def test_command_text_is_ignored(self, dispatcher, transport, mock_orchestrator):
        """Unknown commands produce neither a notice nor an exchange."""
        await dispatcher.dispatch(InboundEvent(chat_id=42, text="/unknown"))

        assert transport.sent == []
        mock_orchestrator.run_exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notice_failure_does_not_abort(self, dispatcher, transport, mock_orchestrator):
        """A failed courtesy notice doesn't stop the exchange."""
        transport.fail_on = {PROCESSING_NOTICE}

        await dispatcher.dispatch(InboundEvent(chat_id=42, text="hello"))

        mock_orchestrator.run_exchange.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_history_error_notice(self, dispatcher, transport, mock_orchestrator):
        """An unreadable transcript is reported to the user."""
        mock_orchestrator.run_exchange.side_effect = StorageReadError("corrupt")

        await dispatcher.dispatch(InboundEvent(chat_id=42, text="hello"))

        assert transport.texts[-1] == HISTORY_ERROR_NOTICE

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, dispatcher, transport, mock_orchestrator):
        """Unexpected errors become a notice instead of propagating."""
        mock_orchestrator.run_exchange.side_effect = RuntimeError("bug")

        await dispatcher.dispatch(InboundEvent(chat_id=42, text="hello"))

        assert len(transport.texts) == 2


class TestPhotoRouting:
    """Tests for photo messages."""

    @pytest.mark.asyncio
    async def test_photo_exchange(self, dispatcher, transport, mock_orchestrator):
        """OCR text is echoed back and sent as an explanation request."""
        transport.files = {"p-big": b"img"}

        await dispatcher.dispatch(photo_event())

        assert transport.texts[0] == OCR_NOTICE
        assert transport.sent[1] == (42, f"```\nconst x = 1;\n```\n\n{ANALYZING_NOTICE}", "Markdown")
        art = mock_orchestrator.run_exchange.await_args.args[1]
        assert art.modality == Modality.IMAGE
        assert art.text.endswith("const x = 1;")

    @pytest.mark.asyncio
    async def test_blank_photo_is_noop(self, dispatcher, transport, mock_extractor, mock_orchestrator):
        """Nothing recognized: notice, no exchange."""
        transport.files = {"p-big": b"img"}
        mock_extractor.recognize = AsyncMock(return_value=RecognitionResult(text="   "))

        await dispatcher.dispatch(photo_event())

        assert transport.texts == [OCR_NOTICE, NOT_RECOGNIZED_NOTICE]
        mock_orchestrator.run_exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ocr_not_ready(self, dispatcher, transport, mock_extractor, mock_orchestrator):
        """OCR not initialized yet is reported as an image error."""
        transport.files = {"p-big": b"img"}
        mock_extractor.recognize = AsyncMock(side_effect=ExtractorNotReadyError())

        await dispatcher.dispatch(photo_event())

        assert transport.texts == [OCR_NOTICE, IMAGE_ERROR_NOTICE]
        mock_orchestrator.run_exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_text_and_photo_trigger_two_exchanges(self, dispatcher, transport, mock_orchestrator):
        """Each modality on one event runs its own exchange."""
        transport.files = {"p-big": b"img"}

        await dispatcher.dispatch(photo_event(text="and this?"))

        modalities = [c.args[1].modality for c in mock_orchestrator.run_exchange.await_args_list]
        assert modalities == [Modality.TEXT, Modality.IMAGE]


class TestDocumentRouting:
    """Tests for file messages."""

    @pytest.mark.asyncio
    async def test_allowed_file(self, dispatcher, transport, mock_orchestrator):
        """Allowed files are read and analyzed."""
        transport.files = {"d1": b"console.log(1)"}

        await dispatcher.dispatch(InboundEvent(chat_id=1, document=DocumentRef(file_id="d1", file_name="a.js")))

        assert transport.texts == [FILE_NOTICE]
        art = mock_orchestrator.run_exchange.await_args.args[1]
        assert "console.log(1)" in art.text

    @pytest.mark.asyncio
    async def test_disallowed_file_is_silent(self, dispatcher, transport, mock_orchestrator):
        """Unsupported files: no notice, no fetch, no exchange."""
        await dispatcher.dispatch(InboundEvent(chat_id=1, document=DocumentRef(file_id="d1", file_name="a.pdf")))

        assert transport.sent == []
        assert transport.downloads == []
        mock_orchestrator.run_exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fetch_error_notice(self, dispatcher, transport, mock_orchestrator):
        """A failed download is reported and aborts the exchange."""
        await dispatcher.dispatch(InboundEvent(chat_id=1, document=DocumentRef(file_id="gone", file_name="a.txt")))

        assert transport.texts == [FILE_NOTICE, FILE_ERROR_NOTICE]
        mock_orchestrator.run_exchange.assert_not_awaited()


class TestHelp:
    """Tests for /start."""

    @pytest.mark.asyncio
    async def test_help_uses_markdown(self, dispatcher, transport, mock_orchestrator):
        await dispatcher.send_help(5)

        assert transport.sent == [(5, HELP_TEXT, "Markdown")]
        mock_orchestrator.run_exchange.assert_not_awaited()

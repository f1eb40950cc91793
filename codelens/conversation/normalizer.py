"""
Input normalization.

Turns one inbound modality (text, photo, uploaded file) into the prompt text
that becomes the user's turn, or into a Skip when there is nothing to send.
"""
import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable, List, Optional, Union

from codelens.core.exceptions import NormalizationError
from codelens.core.ocr import ImageTextExtractor
from codelens.interfaces.base import DocumentRef, Modality, PhotoRef, Transport

logger = logging.getLogger(__name__)

COMMAND_PREFIX = "/"

IMAGE_PROMPT_TEMPLATE = "Analyze this code or error and explain:\n\n{text}"
FILE_PROMPT_TEMPLATE = "Analyze this code from `{file_name}`:\n```{fence}\n{content}\n```"

NOT_RECOGNIZED_NOTICE = "❌ No text recognized. Try another screenshot."

# Code fence language per extension; anything else gets a bare fence.
FENCE_LANGUAGES = {
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
    ".jsx": "jsx",
    ".ts": "ts",
    ".tsx": "tsx",
    ".json": "json",
    ".py": "python",
}


@dataclass(frozen=True)
class PromptArtifact:
    """Normalized prompt text ready to become a user turn."""
    text: str
    modality: Modality
    # Raw OCR text or file name, echoed back to the user by the dispatcher
    source: Optional[str] = None


@dataclass(frozen=True)
class Skip:
    """No exchange for this input. ``notice`` is shown to the user if set."""
    reason: str
    notice: Optional[str] = None


NormalizedInput = Union[PromptArtifact, Skip]


class InputNormalizer:
    """Builds prompt text from text messages, photos and text files."""

    def __init__(
        self,
        transport: Transport,
        extractor: ImageTextExtractor,
        allowed_extensions: Iterable[str],
        max_prompt_chars: int = 16000,
    ):
        self.transport = transport
        self.extractor = extractor
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}
        self.max_prompt_chars = max_prompt_chars

    def from_text(self, text: str) -> NormalizedInput:
        """Plain text is forwarded verbatim; commands are not."""
        if text.startswith(COMMAND_PREFIX):
            return Skip(reason="command")
        return PromptArtifact(text=text, modality=Modality.TEXT)

    async def from_photo(self, photos: List[PhotoRef]) -> NormalizedInput:
        """OCR the largest photo variant and wrap the text in an explanation request."""
        try:
            best = PhotoRef.largest(photos)
            image = await self.transport.download_file(best.file_id)
            result = await self.extractor.recognize(image)
        except NormalizationError:
            raise
        except Exception as e:
            logger.error(f"[OCR] Failed to process image: {e}")
            raise NormalizationError("image", str(e), cause=e) from e

        extracted = result.text.strip()
        if not extracted:
            return Skip(reason="empty_ocr", notice=NOT_RECOGNIZED_NOTICE)

        return PromptArtifact(
            text=IMAGE_PROMPT_TEMPLATE.format(text=extracted),
            modality=Modality.IMAGE,
            source=extracted,
        )

    def is_allowed(self, file_name: Optional[str]) -> bool:
        """Only source-code and plain text files are read."""
        if not file_name:
            return False
        return PurePath(file_name).suffix.lower() in self.allowed_extensions

    async def from_document(self, document: DocumentRef) -> NormalizedInput:
        """Read an allow-listed text file and wrap it in a code-analysis request."""
        if not self.is_allowed(document.file_name):
            logger.info(f"Ignoring file with unsupported extension: {document.file_name}")
            return Skip(reason="unsupported_file")

        try:
            raw = await self.transport.download_file(document.file_id)
        except Exception as e:
            logger.error(f"Failed to fetch file {document.file_name}: {e}")
            raise NormalizationError("document", str(e), cause=e) from e

        content = raw.decode("utf-8", errors="replace")[:self.max_prompt_chars]
        fence = FENCE_LANGUAGES.get(PurePath(document.file_name).suffix.lower(), "")

        return PromptArtifact(
            text=FILE_PROMPT_TEMPLATE.format(
                file_name=document.file_name, fence=fence, content=content
            ),
            modality=Modality.DOCUMENT,
            source=document.file_name,
        )

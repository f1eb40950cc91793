"""
OCR engine for screenshots of code and error messages.

A single Tesseract-backed extractor is shared by the whole process. It is
initialized once at startup; recognize() waits for that to finish (up to a
timeout) instead of relying on startup ordering.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from typing import List, Optional

import pytesseract
from PIL import Image, UnidentifiedImageError

from codelens.core.exceptions import ExtractorNotReadyError, NormalizationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecognitionResult:
    """Text recognized in one image."""
    text: str


class ImageTextExtractor:
    """Tesseract OCR wrapper with an explicit ready state."""

    def __init__(self, ready_timeout: float = 30.0):
        self.ready_timeout = ready_timeout
        self.languages: List[str] = []
        self.error: Optional[str] = None
        self._ready = asyncio.Event()
        self._finished = asyncio.Event()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def lang(self) -> str:
        return "+".join(self.languages)

    async def initialize(self, languages: List[str]) -> None:
        """Check the Tesseract binary and language packs, then mark ready.

        Failures are logged and recorded; the extractor stays not-ready.
        """
        logger.info(f"[OCR] Initializing Tesseract ({'+'.join(languages)})...")
        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
            installed = set(await asyncio.to_thread(pytesseract.get_languages))
        except (pytesseract.TesseractNotFoundError, OSError, RuntimeError) as e:
            self.error = str(e)
            logger.error(f"[OCR] Tesseract is not available: {e}")
            self._finished.set()
            return

        missing = [lang for lang in languages if lang not in installed]
        if missing:
            logger.warning(f"[OCR] Language packs not installed, skipping: {', '.join(missing)}")
        self.languages = [lang for lang in languages if lang in installed] or ["eng"]

        self._ready.set()
        self._finished.set()
        logger.info(f"[OCR] Tesseract {version} ready ({self.lang})")

    async def wait_ready(self, timeout: Optional[float] = None) -> None:
        """Wait for initialization to finish, raising if it did not succeed."""
        if self.ready:
            return
        try:
            await asyncio.wait_for(self._finished.wait(), timeout or self.ready_timeout)
        except asyncio.TimeoutError:
            raise ExtractorNotReadyError("OCR engine is still initializing") from None
        if not self.ready:
            raise ExtractorNotReadyError(f"OCR engine failed to initialize: {self.error}")

    async def recognize(self, image: bytes) -> RecognitionResult:
        """Run OCR on raw image bytes."""
        await self.wait_ready()
        try:
            text = await asyncio.to_thread(self._recognize_sync, image)
        except (UnidentifiedImageError, OSError) as e:
            raise NormalizationError("image", f"cannot decode image: {e}", cause=e) from e
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise NormalizationError("image", f"OCR failed: {e}", cause=e) from e

        logger.info(f"[OCR] Recognized {len(text)} chars")
        return RecognitionResult(text=text)

    def _recognize_sync(self, image: bytes) -> str:
        with Image.open(io.BytesIO(image)) as img:
            gray = img.convert("L")
            return pytesseract.image_to_string(gray, lang=self.lang)


_extractor: Optional[ImageTextExtractor] = None


def get_text_extractor() -> ImageTextExtractor:
    """Get or create the process-wide extractor instance."""
    global _extractor
    if _extractor is None:
        _extractor = ImageTextExtractor()
    return _extractor

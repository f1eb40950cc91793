"""
Codelens Test Configuration

Shared fixtures and configuration for pytest.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from codelens.conversation.delivery import ChunkedDelivery
from codelens.conversation.store import TranscriptStore
from codelens.core.exceptions import DeliveryError
from codelens.core.ocr import ImageTextExtractor, RecognitionResult
from codelens.interfaces.base import Transport


# =============================================================================
# Fakes
# =============================================================================

class FakeTransport(Transport):
    """In-memory transport recording everything sent."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        self.files = files or {}
        self.sent: List[Tuple[object, str, Optional[str]]] = []
        self.downloads: List[str] = []
        self.fail_on: set = set()

    async def send_message(self, chat_id, text, parse_mode=None):
        if text in self.fail_on:
            raise DeliveryError(f"rejected: {text[:20]}")
        self.sent.append((chat_id, text, parse_mode))

    async def download_file(self, file_id):
        self.downloads.append(file_id)
        if file_id not in self.files:
            raise RuntimeError(f"file {file_id} not found")
        return self.files[file_id]

    @property
    def texts(self) -> List[str]:
        return [text for _, text, _ in self.sent]


# =============================================================================
# Environment Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up the required secrets for testing."""
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:ABC-DEF")
    monkeypatch.setenv("DEEPSEEK_API_KEY", "test-api-key")


# =============================================================================
# Component Fixtures
# =============================================================================

@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def store(tmp_path: Path) -> TranscriptStore:
    """Transcript store in a temporary directory."""
    return TranscriptStore(tmp_path / "sessions")


@pytest.fixture
def delivery(transport) -> ChunkedDelivery:
    """Delivery without pacing so tests don't sleep."""
    return ChunkedDelivery(transport, chunk_size=4000, chunk_delay=0, parse_mode="Markdown")


@pytest.fixture
def mock_completion():
    """Completion client returning a fixed reply."""
    mock = MagicMock()
    mock.complete = AsyncMock(return_value="Test response")
    mock.aclose = AsyncMock()
    return mock


@pytest.fixture
def mock_extractor():
    """OCR engine returning fixed text."""
    mock = MagicMock(spec=ImageTextExtractor)
    mock.ready = True
    mock.recognize = AsyncMock(return_value=RecognitionResult(text="const x = 1;\n"))
    return mock

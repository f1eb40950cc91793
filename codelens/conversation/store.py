"""
Transcript store.

One JSON document per chat identity, holding the ordered array of
``{role, content}`` records. Saves replace the whole document.
"""
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from codelens.conversation.models import Transcript, Turn
from codelens.core.exceptions import StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

ChatIdentity = Union[int, str]

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class TranscriptStore:
    """File-backed per-chat transcript storage."""

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"[STORE] Transcript store initialized: {self.storage_path}")

    def path_for(self, chat_id: ChatIdentity) -> Path:
        """File holding the transcript for ``chat_id``."""
        name = _UNSAFE_CHARS.sub("_", str(chat_id))
        return self.storage_path / f"{name}.json"

    def load(self, chat_id: ChatIdentity) -> Transcript:
        """Load the persisted transcript, or an empty one if none exists."""
        filepath = self.path_for(chat_id)
        if not filepath.exists():
            return []

        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"[STORE] Error loading {filepath}: {e}")
            raise StorageReadError(f"cannot read transcript for chat {chat_id}: {e}") from e

        if not isinstance(data, list):
            raise StorageReadError(f"transcript for chat {chat_id} is not a list")

        try:
            return [Turn.model_validate(item) for item in data]
        except ValidationError as e:
            logger.error(f"[STORE] Malformed turn in {filepath}: {e}")
            raise StorageReadError(f"malformed transcript for chat {chat_id}") from e

    def save(self, chat_id: ChatIdentity, transcript: Transcript) -> None:
        """Replace the persisted transcript with ``transcript``.

        Written to a temp file first and moved into place, so a failed write
        never leaves a half-written document behind.
        """
        filepath = self.path_for(chat_id)
        records = [turn.model_dump(mode="json") for turn in transcript]

        tmp_name = None
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.storage_path, prefix=f".{filepath.stem}.", suffix=".tmp"
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, filepath)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"[STORE] Error saving {filepath}: {e}")
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageWriteError(f"cannot write transcript for chat {chat_id}: {e}") from e

        logger.debug(f"[STORE] Saved {len(records)} turns for chat {chat_id}")

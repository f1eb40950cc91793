"""
Chunked reply delivery.

Telegram rejects messages over 4096 characters, so long replies are cut
into segments. Segment k is sent after k * chunk_delay seconds as its own
task; the caller never waits, and one failed segment does not stop the rest.
"""
import asyncio
import logging
from typing import List, Optional, Set

from codelens.interfaces.base import ChatId, Transport

logger = logging.getLogger(__name__)


def split_message(text: str, chunk_size: int = 4000) -> List[str]:
    """Split text into contiguous segments of at most ``chunk_size`` characters."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [text[i:i + chunk_size] for i in range(0, len(text), chunk_size)]


class ChunkedDelivery:
    """Schedules paced, fire-and-forget sends of long replies."""

    def __init__(
        self,
        transport: Transport,
        chunk_size: int = 4000,
        chunk_delay: float = 0.5,
        parse_mode: Optional[str] = None,
    ):
        self.transport = transport
        self.chunk_size = chunk_size
        self.chunk_delay = chunk_delay
        self.parse_mode = parse_mode
        self._pending: Set[asyncio.Task] = set()

    def deliver(self, chat_id: ChatId, text: str) -> List[asyncio.Task]:
        """Schedule every segment of ``text`` and return immediately."""
        segments = split_message(text, self.chunk_size)
        tasks = []
        for index, segment in enumerate(segments):
            task = asyncio.create_task(
                self._send_segment(chat_id, index, segment, index * self.chunk_delay)
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)

        logger.debug(f"[DELIVERY] Scheduled {len(tasks)} segment(s) for chat {chat_id}")
        return tasks

    async def _send_segment(self, chat_id: ChatId, index: int, segment: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await self.transport.send_message(chat_id, segment, parse_mode=self.parse_mode)
        except Exception as e:
            logger.error(f"[DELIVERY] Segment {index} to chat {chat_id} failed: {e}")

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every scheduled segment (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

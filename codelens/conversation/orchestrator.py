"""Conversation Orchestrator - runs one exchange per normalized prompt.

An exchange:
1. Loads the chat's transcript and appends the user turn
2. Calls the completion service with the whole transcript
3. Appends the assistant turn and saves the transcript
4. Hands the reply to chunked delivery

Completion failures become a fallback reply; save failures are only logged.
"""
import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Dict

from codelens.conversation.delivery import ChunkedDelivery
from codelens.conversation.models import Transcript, Turn, to_messages
from codelens.conversation.normalizer import PromptArtifact
from codelens.conversation.store import ChatIdentity, TranscriptStore
from codelens.core.exceptions import CompletionError, StorageWriteError
from codelens.core.llm_client import LLMClient

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "❌ Error contacting the model. Please try again later."


class ExchangeState(Enum):
    """Where an exchange is in its lifecycle."""
    IDLE = "idle"
    AWAITING_COMPLETION = "awaiting_completion"
    PERSISTING = "persisting"
    DELIVERING = "delivering"


@dataclass
class ExchangeResult:
    """Outcome of a finished exchange."""
    chat_id: ChatIdentity
    reply: str
    transcript: Transcript
    completed: bool = True
    persisted: bool = True
    state: ExchangeState = ExchangeState.IDLE


class ChatLocks:
    """One asyncio.Lock per chat, dropped once nobody holds or waits for it."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, chat_id: ChatIdentity) -> AsyncIterator[None]:
        key = str(chat_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class ConversationOrchestrator:
    """Runs exchanges against the completion service and the transcript store."""

    def __init__(
        self,
        store: TranscriptStore,
        completion: LLMClient,
        delivery: ChunkedDelivery,
        serialize_per_chat: bool = True,
    ):
        self.store = store
        self.completion = completion
        self.delivery = delivery
        self.serialize_per_chat = serialize_per_chat
        self.locks = ChatLocks()
        self.states: Dict[str, ExchangeState] = {}

    def state_of(self, chat_id: ChatIdentity) -> ExchangeState:
        return self.states.get(str(chat_id), ExchangeState.IDLE)

    def _enter(self, chat_id: ChatIdentity, state: ExchangeState) -> None:
        logger.debug(f"Chat {chat_id}: {self.state_of(chat_id).value} -> {state.value}")
        if state is ExchangeState.IDLE:
            self.states.pop(str(chat_id), None)
        else:
            self.states[str(chat_id)] = state

    async def run_exchange(self, chat_id: ChatIdentity, artifact: PromptArtifact) -> ExchangeResult:
        """Run one full exchange for ``artifact``.

        Raises:
            StorageReadError: If the existing transcript cannot be loaded.
                Nothing is appended and the completion service is not called.
        """
        guard = self.locks.hold(chat_id) if self.serialize_per_chat else contextlib.nullcontext()
        async with guard:
            try:
                return await self._exchange(chat_id, artifact)
            finally:
                self._enter(chat_id, ExchangeState.IDLE)

    async def _exchange(self, chat_id: ChatIdentity, artifact: PromptArtifact) -> ExchangeResult:
        self._enter(chat_id, ExchangeState.AWAITING_COMPLETION)
        history = await asyncio.to_thread(self.store.load, chat_id)
        logger.info(f"Loaded {len(history)} turns for chat {chat_id}")

        transcript: Transcript = [*history, Turn.user(artifact.text)]

        completed = True
        try:
            reply = await self.completion.complete(to_messages(transcript))
        except CompletionError as e:
            logger.error(f"Completion failed for chat {chat_id}: {e}")
            reply = FALLBACK_REPLY
            completed = False

        self._enter(chat_id, ExchangeState.PERSISTING)
        transcript.append(Turn.assistant(reply))

        persisted = True
        try:
            await asyncio.to_thread(self.store.save, chat_id, transcript)
        except StorageWriteError as e:
            logger.error(f"Transcript for chat {chat_id} not saved: {e}")
            persisted = False

        self._enter(chat_id, ExchangeState.DELIVERING)
        self.delivery.deliver(chat_id, reply)

        return ExchangeResult(
            chat_id=chat_id,
            reply=reply,
            transcript=transcript,
            completed=completed,
            persisted=persisted,
        )

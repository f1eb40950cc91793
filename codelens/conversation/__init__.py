"""Conversation core: transcripts, normalization, exchanges and delivery."""

from codelens.conversation.delivery import ChunkedDelivery, split_message
from codelens.conversation.models import Role, Transcript, Turn
from codelens.conversation.normalizer import InputNormalizer, PromptArtifact, Skip
from codelens.conversation.orchestrator import (
    ConversationOrchestrator,
    ExchangeResult,
    ExchangeState,
)
from codelens.conversation.store import TranscriptStore

__all__ = [
    "ChunkedDelivery",
    "ConversationOrchestrator",
    "ExchangeResult",
    "ExchangeState",
    "InputNormalizer",
    "PromptArtifact",
    "Role",
    "Skip",
    "Transcript",
    "TranscriptStore",
    "Turn",
    "split_message",
]

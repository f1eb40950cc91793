"""
Chat transport interfaces.

The transport-neutral event model and Transport contract live in base;
the Telegram implementation lives in the telegram subpackage.
"""

from codelens.interfaces.base import (
    ChatId,
    DocumentRef,
    InboundEvent,
    Modality,
    PhotoRef,
    Transport,
)

__all__ = [
    "ChatId",
    "DocumentRef",
    "InboundEvent",
    "Modality",
    "PhotoRef",
    "Transport",
]

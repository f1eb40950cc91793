"""
Base classes for the chat transport.

Inbound events are converted into a channel-agnostic InboundEvent before
they reach the dispatcher, so everything below the transport can be tested
without a live bot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

ChatId = Union[int, str]


class Modality(Enum):
    """Kinds of user input the relay understands."""
    TEXT = "text"
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass(frozen=True)
class PhotoRef:
    """One size variant of an uploaded photo."""
    file_id: str
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None

    @property
    def area(self) -> int:
        return self.width * self.height

    @staticmethod
    def largest(photos: List["PhotoRef"]) -> "PhotoRef":
        """Pick the highest-resolution variant.

        Ties on pixel area are broken by file size; later entries win, which
        matches transports that list sizes in ascending order.
        """
        if not photos:
            raise ValueError("no photo variants")
        best = photos[0]
        for photo in photos[1:]:
            if (photo.area, photo.file_size or 0) >= (best.area, best.file_size or 0):
                best = photo
        return best


@dataclass(frozen=True)
class DocumentRef:
    """An uploaded file attachment."""
    file_id: str
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_size: Optional[int] = None


@dataclass
class InboundEvent:
    """A message received from the transport."""
    chat_id: ChatId
    text: Optional[str] = None
    photo: List[PhotoRef] = field(default_factory=list)
    document: Optional[DocumentRef] = None
    message_id: Optional[int] = None
    sender_name: Optional[str] = None


class Transport(ABC):
    """Outbound side of the chat transport."""

    @abstractmethod
    async def send_message(self, chat_id: ChatId, text: str, parse_mode: Optional[str] = None) -> None:
        """
        Send a text message.

        Raises:
            DeliveryError: If the transport rejected the message
        """
        pass

    @abstractmethod
    async def download_file(self, file_id: str) -> bytes:
        """
        Resolve a file id and fetch its contents.

        Transport errors propagate; the normalizer reports them per modality.
        """
        pass

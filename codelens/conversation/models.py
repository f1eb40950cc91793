"""Conversation data model."""
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Author of a turn."""
    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """One message in a conversation. Immutable once created."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Turn":
        return cls(role=Role.ASSISTANT, content=content)

    def to_message(self) -> Dict[str, str]:
        """Format as a chat completion message."""
        return {"role": self.role, "content": self.content}


# Ordered, insertion order is replayed verbatim to the completion service.
Transcript = List[Turn]


def to_messages(transcript: Transcript) -> List[Dict[str, str]]:
    """Convert a transcript into the completion API's ``messages`` array."""
    return [turn.to_message() for turn in transcript]

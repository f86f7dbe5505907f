"""Conversation data models."""

import uuid
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def generate_message_id() -> str:
    """Generate a unique message identifier."""
    return f"msg-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass(frozen=True)
class AudioReference:
    """Reference to audio previously returned by the provider."""
    id: str
    transcript: Optional[str] = None


@dataclass(frozen=True)
class ConversationMessage:
    """A single message in the conversation history."""
    role: str  # "user" or "assistant"
    text: str = ""
    audio: Optional[AudioReference] = None
    message_id: str = field(default_factory=generate_message_id)

    def to_api(self) -> Dict[str, Any]:
        """Convert to the provider's chat message format."""
        if self.role == "assistant" and self.audio is not None:
            return {"role": "assistant", "audio": {"id": self.audio.id}}
        return {"role": self.role, "content": self.text}


@dataclass
class AudioReply:
    """Audio payload returned by the provider."""
    id: str
    data: str = field(repr=False)  # base64 WAV
    expires_at: Optional[int] = None
    transcript: Optional[str] = None


@dataclass
class RemoteReply:
    """Parsed reply for a single conversation turn."""
    text: str
    audio: Optional[AudioReply] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_audio(self) -> bool:
        return self.audio is not None and bool(self.audio.data)

"""Conversation service: sends text or recorded audio turns and tracks history."""

import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from ..audio.wav import WAV_HEADER_SIZE
from ..chat.engine import OpenAIAudioChatEngine
from ..chat.schemas import ChatCompletionResponse
from ..errors import RemoteCallError
from ..models.conversation import (
    AudioReference,
    AudioReply,
    ConversationMessage,
    RemoteReply,
)

logger = logging.getLogger(__name__)

DEFAULT_GREETING = "Hello! How are you doing today?"
DEFAULT_AUDIO_PROMPT = (
    "You are AI avatar of my child. Please help remember what I say "
    "and help me trigger more memory."
)
DEFAULT_AUDIO_PLACEHOLDER = "🎤 Audio message sent"


class ConversationService:
    """Turns user input plus prior history into chat completion requests."""

    def __init__(self,
                 engine: OpenAIAudioChatEngine,
                 greeting: Optional[str] = DEFAULT_GREETING,
                 audio_prompt: str = DEFAULT_AUDIO_PROMPT,
                 audio_placeholder: str = DEFAULT_AUDIO_PLACEHOLDER):
        """Initialize conversation service.

        Args:
            engine: Chat engine used for every turn
            greeting: Opening assistant message; None starts with empty history
            audio_prompt: Instruction text sent alongside recorded audio
            audio_placeholder: History text recorded for the user's audio turns
        """
        self.engine = engine
        self.audio_prompt = audio_prompt
        self.audio_placeholder = audio_placeholder

        self.history: List[ConversationMessage] = []
        if greeting:
            self.history.append(ConversationMessage(role="assistant", text=greeting))

    @staticmethod
    def format_history(messages: Sequence[ConversationMessage]) -> List[Dict[str, Any]]:
        """Convert history to the provider's message format."""
        return [message.to_api() for message in messages]

    async def submit_text(self,
                          text: str,
                          prior_history: Optional[Sequence[ConversationMessage]] = None) -> RemoteReply:
        """Send a typed message.

        Args:
            text: Message text
            prior_history: History to send; defaults to this conversation's history

        Raises:
            ValueError: If the text is empty
            RemoteCallError: If the request fails; the user message stays in history
        """
        if not text or not text.strip():
            raise ValueError("No message provided")

        prior = list(self.history if prior_history is None else prior_history)
        self.history.append(ConversationMessage(role="user", text=text))

        messages = self.format_history(prior)
        messages.append({"role": "user", "content": text})
        return await self._complete(messages)

    async def submit_audio(self,
                           container: bytes,
                           prior_history: Optional[Sequence[ConversationMessage]] = None) -> Optional[RemoteReply]:
        """Send a recorded WAV container.

        Args:
            container: Encoded WAV bytes
            prior_history: History to send; defaults to this conversation's history

        Returns:
            The reply, or None if the container holds no audio

        Raises:
            RemoteCallError: If the request fails; the user message stays in history
        """
        if len(container) <= WAV_HEADER_SIZE:
            logger.warning("No audio data captured")
            return None

        prior = list(self.history if prior_history is None else prior_history)
        self.history.append(ConversationMessage(role="user", text=self.audio_placeholder))

        messages = self.format_history(prior)
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": self.audio_prompt},
                {
                    "type": "input_audio",
                    "input_audio": {
                        "data": base64.b64encode(container).decode("ascii"),
                        "format": "wav"
                    }
                }
            ]
        })
        logger.info(f"Submitting audio turn: {len(container)} bytes, {len(prior)} prior messages")
        return await self._complete(messages)

    async def _complete(self, messages: List[Dict[str, Any]]) -> RemoteReply:
        data = await self.engine.complete(messages)
        reply = self.parse_reply(data)

        audio_ref = None
        if reply.audio is not None:
            audio_ref = AudioReference(id=reply.audio.id, transcript=reply.audio.transcript)
        self.history.append(ConversationMessage(role="assistant", text=reply.text, audio=audio_ref))

        logger.info(f"Assistant replied: {len(reply.text)} chars, audio={reply.has_audio}")
        return reply

    @staticmethod
    def parse_reply(data: Dict[str, Any]) -> RemoteReply:
        """Extract text and audio from a chat completions response.

        Raises:
            RemoteCallError: If the response does not contain a message
        """
        try:
            response = ChatCompletionResponse.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid response from server: {e}")
            raise RemoteCallError("Invalid response from server") from e

        message = response.choices[0].message
        audio = None
        if message.audio is not None:
            audio = AudioReply(
                id=message.audio.id,
                data=message.audio.data or "",
                expires_at=message.audio.expires_at,
                transcript=message.audio.transcript
            )

        text = message.content or (audio.transcript if audio else None) or ""
        return RemoteReply(text=text, audio=audio, raw=data)

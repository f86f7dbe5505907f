"""Chat completions engine for audio-capable models."""

import asyncio
import logging
from typing import Any, Dict, List

import aiohttp

from ..errors import RemoteCallError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIAudioChatEngine:
    """Sends conversation turns to an audio-capable chat completions model."""

    def __init__(self,
                 api_key: str,
                 model: str = "gpt-4o-audio-preview",
                 voice: str = "alloy",
                 base_url: str = DEFAULT_BASE_URL,
                 timeout_seconds: float = 60.0):
        """Initialize chat engine.

        Args:
            api_key: OpenAI API key
            model: Model that accepts and produces audio
            voice: Voice used for the spoken reply
            base_url: Chat completions endpoint
            timeout_seconds: Total timeout for one request
        """
        if not api_key:
            raise ValueError("OpenAI API key is not configured")
        self.api_key = api_key
        self.model = model
        self.voice = voice
        self.base_url = base_url
        self.timeout_seconds = timeout_seconds

        logger.info(f"OpenAIAudioChatEngine initialized with model: {model}, voice: {voice}")

    def build_payload(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Build the request body for a list of API-formatted messages."""
        return {
            "model": self.model,
            "modalities": ["text", "audio"],
            "audio": {"voice": self.voice, "format": "wav"},
            "messages": messages
        }

    async def complete(self, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Send messages and return the decoded JSON response.

        Raises:
            RemoteCallError: On network failure, timeout or a non-200 response
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        data = self.build_payload(messages)
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        logger.debug(f"Sending {len(messages)} messages to {self.model}")
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise RemoteCallError(
                            f"Chat API error: {response.status} - {error_text}",
                            status=response.status)
                    return await response.json()
        except (aiohttp.ClientError, ValueError) as e:
            raise RemoteCallError(f"Chat API request failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise RemoteCallError(f"Chat API request timed out after {self.timeout_seconds}s") from e

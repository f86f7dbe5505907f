"""Chat completions client for Talk2Me."""

from .engine import OpenAIAudioChatEngine
from .schemas import ChatCompletionResponse

__all__ = [
    "OpenAIAudioChatEngine",
    "ChatCompletionResponse",
]

"""Pydantic models for the chat completions response."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ResponseAudio(BaseModel):
    """Audio attached to an assistant message."""
    id: str
    data: Optional[str] = None  # base64 WAV
    expires_at: Optional[int] = None
    transcript: Optional[str] = None


class ResponseMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None
    audio: Optional[ResponseAudio] = None


class ResponseChoice(BaseModel):
    index: int = 0
    message: ResponseMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Subset of the chat completions response used by Talk2Me."""
    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[ResponseChoice] = Field(min_length=1)

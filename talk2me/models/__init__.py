"""Data models for the Talk2Me application."""

from .audio import AudioSampleBlock, AudioStats, CaptureState, DecodedAudio
from .events import AudioEvent, CaptureStateEvent, PlaybackEvent
from .conversation import (
    AudioReference,
    AudioReply,
    ConversationMessage,
    RemoteReply,
)

__all__ = [
    "AudioSampleBlock",
    "AudioStats",
    "CaptureState",
    "DecodedAudio",
    "AudioEvent",
    "CaptureStateEvent",
    "PlaybackEvent",
    # Conversation models
    "AudioReference",
    "AudioReply",
    "ConversationMessage",
    "RemoteReply",
]

"""Unit tests for ConversationService class."""

import asyncio
import base64
from unittest.mock import AsyncMock, Mock

import numpy as np
import pytest

from talk2me.audio.wav import encode_wav
from talk2me.errors import RemoteCallError
from talk2me.models.conversation import AudioReference, ConversationMessage
from talk2me.services.conversation_service import (
    DEFAULT_AUDIO_PLACEHOLDER,
    DEFAULT_AUDIO_PROMPT,
    DEFAULT_GREETING,
    ConversationService,
)


@pytest.fixture
def engine(completion_response):
    engine = Mock()
    engine.complete = AsyncMock(return_value=completion_response())
    return engine


@pytest.fixture
def recording():
    return encode_wav([np.full(4096, 0.1, dtype=np.float32)], 44100)


def sent_messages(engine, call_index=-1):
    return engine.complete.await_args_list[call_index][0][0]


@pytest.mark.unit
class TestConversationService:
    """Test cases for ConversationService class."""

    def test_history_starts_with_greeting(self, engine):
        service = ConversationService(engine)

        assert len(service.history) == 1
        assert service.history[0].role == "assistant"
        assert service.history[0].text == DEFAULT_GREETING

    def test_no_greeting(self, engine):
        assert ConversationService(engine, greeting=None).history == []

    def test_submit_text(self, engine):
        service = ConversationService(engine)

        reply = asyncio.run(service.submit_text("I grew up near the sea."))

        assert reply.text == "Tell me more about that day."
        assert reply.has_audio
        assert reply.audio.id == "audio_abc123"
        assert sent_messages(engine) == [
            {"role": "assistant", "content": DEFAULT_GREETING},
            {"role": "user", "content": "I grew up near the sea."},
        ]
        assert [m.role for m in service.history] == ["assistant", "user", "assistant"]
        assert service.history[-1].audio == AudioReference(id="audio_abc123", transcript="Tell me more about that day.")

    def test_submit_text_rejects_empty(self, engine):
        service = ConversationService(engine)

        with pytest.raises(ValueError):
            asyncio.run(service.submit_text("   "))

        engine.complete.assert_not_awaited()
        assert len(service.history) == 1

    def test_submit_audio(self, engine, recording):
        service = ConversationService(engine)

        reply = asyncio.run(service.submit_audio(recording))

        assert reply.text == "Tell me more about that day."
        messages = sent_messages(engine)
        assert messages[0] == {"role": "assistant", "content": DEFAULT_GREETING}
        audio_message = messages[1]
        assert audio_message["role"] == "user"
        text_part, audio_part = audio_message["content"]
        assert text_part == {"type": "text", "text": DEFAULT_AUDIO_PROMPT}
        assert audio_part["type"] == "input_audio"
        assert audio_part["input_audio"]["format"] == "wav"
        assert base64.b64decode(audio_part["input_audio"]["data"]) == recording

        assert service.history[1] == ConversationMessage(
            role="user", text=DEFAULT_AUDIO_PLACEHOLDER, message_id=service.history[1].message_id)

    def test_empty_recording_not_sent(self, engine):
        service = ConversationService(engine)

        assert asyncio.run(service.submit_audio(encode_wav([], 44100))) is None

        engine.complete.assert_not_awaited()
        assert len(service.history) == 1

    def test_assistant_audio_sent_by_id_on_next_turn(self, engine, recording):
        service = ConversationService(engine)

        asyncio.run(service.submit_audio(recording))
        asyncio.run(service.submit_text("It was summer."))

        assert sent_messages(engine) == [
            {"role": "assistant", "content": DEFAULT_GREETING},
            {"role": "user", "content": DEFAULT_AUDIO_PLACEHOLDER},
            {"role": "assistant", "audio": {"id": "audio_abc123"}},
            {"role": "user", "content": "It was summer."},
        ]

    def test_explicit_prior_history(self, engine):
        service = ConversationService(engine)
        prior = [ConversationMessage(role="user", text="earlier")]

        asyncio.run(service.submit_text("now", prior_history=prior))

        assert sent_messages(engine) == [
            {"role": "user", "content": "earlier"},
            {"role": "user", "content": "now"},
        ]

    def test_remote_failure_keeps_only_user_message(self, engine):
        engine.complete.side_effect = RemoteCallError("Chat API error: 500 - boom", status=500)
        service = ConversationService(engine)

        with pytest.raises(RemoteCallError):
            asyncio.run(service.submit_text("Hello?"))

        assert [m.role for m in service.history] == ["assistant", "user"]
        assert service.history[-1].text == "Hello?"

    def test_invalid_response_is_remote_error(self, engine):
        engine.complete.return_value = {"error": "nope"}
        service = ConversationService(engine)

        with pytest.raises(RemoteCallError, match="Invalid response from server"):
            asyncio.run(service.submit_text("Hello?"))

        assert [m.role for m in service.history] == ["assistant", "user"]

    def test_empty_choices_is_remote_error(self):
        with pytest.raises(RemoteCallError):
            ConversationService.parse_reply({"choices": []})


@pytest.mark.unit
class TestParseReply:
    """Test cases for ConversationService.parse_reply."""

    def test_text_only(self, completion_response):
        reply = ConversationService.parse_reply(completion_response(content="Hi", with_audio=False))

        assert reply.text == "Hi"
        assert reply.audio is None
        assert not reply.has_audio

    def test_transcript_used_when_content_missing(self, completion_response):
        reply = ConversationService.parse_reply(completion_response(content=None, transcript="Spoken words"))

        assert reply.text == "Spoken words"
        assert reply.audio.transcript == "Spoken words"
        assert reply.audio.expires_at == 1729350000

    def test_no_text_at_all(self):
        reply = ConversationService.parse_reply({"choices": [{"message": {"content": None}}]})

        assert reply.text == ""

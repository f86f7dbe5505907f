"""Pytest configuration and fixtures for Talk2Me tests."""

import io
import os
import time
import wave
import base64
import logging
from unittest.mock import Mock, patch

import numpy as np
import pytest


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone and speaker")


def pytest_collection_modifyitems(config, items):
    if os.environ.get("TALK2ME_HARDWARE_TESTS") == "1":
        return
    skip_hardware = pytest.mark.skip(reason="set TALK2ME_HARDWARE_TESTS=1 to run hardware tests")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


def _silent_read(num_frames, exception_on_overflow=True):
    # Pace the fake device so the capture thread does not spin
    time.sleep(0.005)
    return np.zeros(num_frames, dtype=np.float32).tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware.

    Every ``open`` call returns a new mock stream so released handles can be
    checked one by one; all of them are collected in ``streams``.
    """
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        streams = []

        def open_stream(**kwargs):
            stream = Mock()
            stream.open_kwargs = kwargs
            stream.read.side_effect = _silent_read
            stream.write.return_value = None
            stream.stop_stream.return_value = None
            stream.close.return_value = None
            streams.append(stream)
            return stream

        mock_pyaudio_instance.open.side_effect = open_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_default_input_device_info.return_value = {
            'index': 0,
            'name': 'Mock Microphone',
            'defaultSampleRate': 44100.0,
        }
        mock_pyaudio_instance.get_format_from_width.return_value = 8  # paInt16

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'streams': streams
        }


@pytest.fixture
def slow_output(mock_pyaudio):
    """Make every output write take 10ms so playback stays active for a while."""
    original = mock_pyaudio['instance'].open.side_effect

    def open_stream(**kwargs):
        stream = original(**kwargs)
        stream.write.side_effect = lambda data: time.sleep(0.01)
        return stream

    mock_pyaudio['instance'].open.side_effect = open_stream
    return mock_pyaudio


@pytest.fixture
def sine_block():
    """Generate a 4096-sample block of a 440 Hz sine at half amplitude."""
    sample_rate = 44100
    t = np.arange(4096) / sample_rate
    return (0.5 * np.sin(2 * np.pi * 440 * t)).astype(np.float32)


@pytest.fixture
def make_wav_b64():
    """Build base64 WAV payloads like the ones returned by the chat API."""
    def build(duration_seconds=0.5, sample_rate=24000, channels=1):
        frames = int(duration_seconds * sample_rate)
        t = np.arange(frames) / sample_rate
        samples = (0.3 * np.sin(2 * np.pi * 220 * t) * 32767).astype('<i2')
        if channels > 1:
            samples = np.repeat(samples, channels)

        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(2)
            wf.setframerate(sample_rate)
            wf.writeframes(samples.tobytes())
        return base64.b64encode(buffer.getvalue()).decode('ascii')

    return build


@pytest.fixture
def completion_response(make_wav_b64):
    """Chat completions response carrying text and audio."""
    def build(content="Tell me more about that day.", transcript=None, with_audio=True):
        message = {"role": "assistant", "content": content}
        if with_audio:
            message["audio"] = {
                "id": "audio_abc123",
                "expires_at": 1729350000,
                "transcript": transcript or content,
                "data": make_wav_b64(duration_seconds=0.2),
            }
        return {
            "id": "chatcmpl-123",
            "model": "gpt-4o-audio-preview",
            "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
        }

    return build


@pytest.fixture
def config_file(tmp_path):
    """Write a test configuration file and return its path."""
    path = tmp_path / "talk2me.yaml"
    path.write_text(
        "audio:\n"
        "  chunk_size: 4096\n"
        "  sample_rate: 44100\n"
        "openai:\n"
        "  api_key: test-key\n"
        "  model: gpt-4o-audio-preview\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  file_path: logs/talk2me.log\n"
        "  console_output: false\n",
        encoding="utf-8"
    )
    return str(path)

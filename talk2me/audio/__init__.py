"""Audio capture, encoding and playback module."""

from .buffer import SampleBuffer
from .capture import AudioCapture, CaptureSession
from .playback import AudioPlayer, PlaybackHandle
from .session_manager import CaptureSessionManager
from .status_pub import StatusPublisher
from .wav import decode_wav, encode_wav

__all__ = [
    'SampleBuffer',
    'AudioCapture',
    'CaptureSession',
    'CaptureSessionManager',
    'AudioPlayer',
    'PlaybackHandle',
    'StatusPublisher',
    'encode_wav',
    'decode_wav',
]

"""Playback of base64 WAV audio returned by the completion API."""

import base64
import binascii
import uuid
import logging
import threading
from threading import Thread, Event
from typing import Callable, List, Optional

import pyaudio

from ..errors import PlaybackError
from ..models.audio import DecodedAudio
from ..models.events import PlaybackEvent
from .status_pub import StatusPublisher
from .wav import decode_wav

logger = logging.getLogger(__name__)


def decode_base64_audio(audio_b64: str) -> bytes:
    """Decode a base64 audio payload. Line breaks and other whitespace are ignored.

    Raises:
        PlaybackError: If the payload is not valid base64
    """
    if not isinstance(audio_b64, str):
        raise PlaybackError(f"Audio payload must be a base64 string, got {type(audio_b64).__name__}")
    try:
        return base64.b64decode("".join(audio_b64.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise PlaybackError(f"Malformed base64 audio payload: {e}") from e


class PlaybackHandle:
    """One decoded clip playing on its own output stream and thread."""

    def __init__(
        self,
        audio: DecodedAudio,
        pyaudio_instance: pyaudio.PyAudio,
        on_finished: Optional[Callable[["PlaybackHandle"], None]] = None,
        output_device_index: Optional[int] = None,
        frames_per_buffer: int = 1024,
    ):
        self.playback_id = uuid.uuid4().hex[:8]
        self.audio = audio
        self.on_finished = on_finished
        self.frames_per_buffer = frames_per_buffer

        self.stream = pyaudio_instance.open(
            format=pyaudio_instance.get_format_from_width(audio.sample_width),
            channels=audio.channels,
            rate=audio.sample_rate,
            output=True,
            output_device_index=output_device_index,
            frames_per_buffer=frames_per_buffer
        )

        self.thread: Optional[Thread] = None
        self.stop_event = Event()
        self.released = False
        self._release_lock = threading.Lock()

    @property
    def is_playing(self) -> bool:
        return (self.thread is not None and self.thread.is_alive()
                and not self.stop_event.is_set())

    def start(self) -> None:
        """Start writing frames to the output stream."""
        self.thread = Thread(target=self._play, daemon=True)
        self.thread.name = f"PlaybackThread-{self.playback_id}"
        self.thread.start()
        logger.info(f"Playback {self.playback_id} started: "
                    f"{self.audio.duration_seconds:.2f}s at {self.audio.sample_rate}Hz")

    def _play(self) -> None:
        bytes_per_write = self.frames_per_buffer * self.audio.channels * self.audio.sample_width
        frames = self.audio.frames
        try:
            for offset in range(0, len(frames), bytes_per_write):
                if self.stop_event.is_set():
                    break
                self.stream.write(frames[offset:offset + bytes_per_write])
        except OSError as e:
            logger.error(f"Playback {self.playback_id} output failed: {e}")
        finally:
            finished = not self.stop_event.is_set()
            self._release()
            if finished:
                logger.debug(f"Playback {self.playback_id} finished")
                if self.on_finished:
                    self.on_finished(self)

    def stop(self, timeout: float = 2.0) -> None:
        """Stop playback and release the output stream.

        If the playback thread is stuck in a write, the stream is left to the
        thread, which releases it on exit.
        """
        self.stop_event.set()
        if (self.thread is not None and self.thread.is_alive()
                and self.thread is not threading.current_thread()):
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning(f"Playback thread {self.playback_id} did not stop cleanly, "
                               f"output stream will be released when it exits")
                return
        self._release()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until playback ends. Returns True if it has ended."""
        if self.thread is not None:
            self.thread.join(timeout=timeout)
            return not self.thread.is_alive()
        return True

    def _release(self) -> None:
        with self._release_lock:
            if self.released:
                return
            self.released = True
        try:
            self.stream.stop_stream()
            self.stream.close()
        except OSError as e:
            logger.warning(f"Error closing output stream for {self.playback_id}: {e}")


class AudioPlayer:
    """Plays reply audio, keeping at most one clip active at a time."""

    def __init__(
        self,
        output_device_index: Optional[int] = None,
        frames_per_buffer: int = 1024,
        status_publisher: Optional[StatusPublisher] = None,
    ):
        """Initialize audio player.

        Args:
            output_device_index: PyAudio output device index; None for the default
            frames_per_buffer: Frames written to the output stream per call
            status_publisher: Optional publisher for playback events
        """
        self.output_device_index = output_device_index
        self.frames_per_buffer = frames_per_buffer
        self.status_publisher = status_publisher

        # Output context, opened on first playback
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.active: List[PlaybackHandle] = []
        self.lock = threading.Lock()

    @property
    def active_count(self) -> int:
        with self.lock:
            return len(self.active)

    def play(self, audio_b64: str) -> PlaybackHandle:
        """Decode a base64 WAV payload and play it, stopping any current playback.

        Raises:
            PlaybackError: If the payload cannot be decoded or the output device
                cannot be opened. Current playback is left untouched.
        """
        audio = decode_wav(decode_base64_audio(audio_b64))

        try:
            handle = PlaybackHandle(
                audio,
                self._output_context(),
                on_finished=self._on_finished,
                output_device_index=self.output_device_index,
                frames_per_buffer=self.frames_per_buffer
            )
        except (OSError, ValueError) as e:
            raise PlaybackError(f"Could not open audio output: {e}") from e

        self.stop_all()
        with self.lock:
            self.active.append(handle)
        handle.start()
        self._publish("started", handle)
        return handle

    def stop_all(self) -> None:
        """Stop and release every tracked playback."""
        with self.lock:
            handles, self.active = self.active, []
        for handle in handles:
            handle.stop()
            self._publish("stopped", handle)

    def close(self) -> None:
        """Stop playback and release the output context."""
        self.stop_all()
        if self.pyaudio_instance is not None:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None
            logger.info("Audio output released")

    def _output_context(self) -> pyaudio.PyAudio:
        if self.pyaudio_instance is None:
            self.pyaudio_instance = pyaudio.PyAudio()
        return self.pyaudio_instance

    def _on_finished(self, handle: PlaybackHandle) -> None:
        with self.lock:
            if handle not in self.active:
                return
            self.active.remove(handle)
        self._publish("finished", handle)

    def _publish(self, event_type: str, handle: PlaybackHandle) -> None:
        if self.status_publisher:
            self.status_publisher.publish_playback_event(PlaybackEvent(
                event_type=event_type,
                playback_id=handle.playback_id,
                duration_seconds=handle.audio.duration_seconds
            ))

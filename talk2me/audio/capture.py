"""Microphone capture: a background thread reading float32 blocks from PyAudio."""

import time
import uuid
import logging
import threading
from threading import Thread, Event
from datetime import datetime
from typing import Optional, Callable

import numpy as np
import pyaudio

from ..errors import DeviceAccessError
from ..models.audio import AudioStats
from ..models.events import AudioEvent
from .buffer import SampleBuffer
from .wav import DEFAULT_SAMPLE_RATE, encode_wav

logger = logging.getLogger(__name__)


class AudioCapture:
    """Reads fixed-size blocks from the default input device on a background thread."""

    join_timeout = 2.0

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        sample_rate: Optional[int] = None,
        chunk_size: int = 4096,
        input_device_index: Optional[int] = None,
        error_callback: Optional[Callable[[Exception], None]] = None,
    ):
        """Initialize audio capture.

        Args:
            callback: Called with an AudioEvent for every non-empty block
            sample_rate: Capture rate; None uses the device's native rate
            chunk_size: Samples per block
            input_device_index: PyAudio device index; None for the default device
            error_callback: Called from the capture thread if the input stream fails
        """
        self.audio_event_callback = callback
        self.error_callback = error_callback
        self.requested_sample_rate = sample_rate
        self.sample_rate = sample_rate or DEFAULT_SAMPLE_RATE
        self.chunk_size = chunk_size
        self.input_device_index = input_device_index

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.total_chunks = 0

        # Device handles, owned by this instance until release()
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None
        self._release_lock = threading.Lock()
        self._reader_active = False
        self._release_pending = False

    def open_stream(self) -> None:
        """Acquire the input device.

        Raises:
            DeviceAccessError: If PyAudio cannot open the device. Nothing is retained.
        """
        if self.stream is not None:
            return

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            if self.requested_sample_rate is None:
                self.sample_rate = self._native_sample_rate()
            self.stream = self.pyaudio_instance.open(
                format=pyaudio.paFloat32,
                channels=1,
                rate=self.sample_rate,
                input=True,
                input_device_index=self.input_device_index,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except (OSError, ValueError) as e:
            logger.error(f"Could not open audio input device: {e}")
            self.release()
            raise DeviceAccessError(f"Microphone unavailable: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

    def _native_sample_rate(self) -> int:
        if self.input_device_index is None:
            info = self.pyaudio_instance.get_default_input_device_info()
        else:
            info = self.pyaudio_instance.get_device_info_by_index(self.input_device_index)
        rate = int(info.get("defaultSampleRate") or 0)
        return rate or DEFAULT_SAMPLE_RATE

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        self.open_stream()

        logger.info("Starting audio recording")
        self.stop_event.clear()
        self.start_time = datetime.now()
        self.total_chunks = 0

        with self._release_lock:
            self._reader_active = True
        self.recording_thread = Thread(target=self._run_reader, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_recording = True
        self.recording_thread.start()

    def stop_recording(self) -> None:
        """Stop the recording thread. Device handles stay open until release()."""
        if not self.is_recording:
            return

        logger.info("Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=self.join_timeout)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"Recording stopped. Total chunks: {self.total_chunks}")

    def release(self) -> None:
        """Stop recording and release the stream and PyAudio instance. Safe to call repeatedly.

        If the capture thread is still blocked in a read, the handles are
        released by that thread when the read returns.
        """
        self.stop_recording()

        with self._release_lock:
            if self._reader_active:
                self._release_pending = True
                logger.warning("Capture thread still reading, input device will be released when it exits")
                return
        self._close_handles()

    def _close_handles(self) -> None:
        with self._release_lock:
            stream, self.stream = self.stream, None
            pyaudio_instance, self.pyaudio_instance = self.pyaudio_instance, None

        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing input stream: {e}")
        if pyaudio_instance is not None:
            pyaudio_instance.terminate()
            logger.debug("Input device released")

    def __read_audio_chunk(self) -> np.ndarray:
        raw = self.stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return np.frombuffer(raw, dtype=np.float32)

    def __publish_audio_event(self, samples: np.ndarray) -> None:
        audio_event = AudioEvent(
            chunk_id=f"chunk_{self.total_chunks}",
            samples=samples,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate
        )
        self.audio_event_callback(audio_event)

    def _run_reader(self) -> None:
        try:
            self._record_continuously()
        finally:
            with self._release_lock:
                self._reader_active = False
                release_now, self._release_pending = self._release_pending, False
            if release_now:
                self._close_handles()

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                samples = self.__read_audio_chunk()
                if len(samples) > 0:
                    self.__publish_audio_event(samples)
        except OSError as e:
            logger.error(f"Audio input stream failed: {e}")
            self.is_recording = False
            if self.error_callback:
                self.error_callback(e)

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            total_samples=0
        )


class CaptureSession:
    """One recording: the input device handles plus the blocks captured with them.

    Usable as a context manager; close() releases everything exactly once.
    """

    def __init__(self,
                 sample_rate: Optional[int] = None,
                 chunk_size: int = 4096,
                 input_device_index: Optional[int] = None,
                 on_error: Optional[Callable[["CaptureSession", Exception], None]] = None):
        self.session_id = uuid.uuid4().hex[:12]
        self.on_error = on_error
        self.buffer = SampleBuffer(sample_rate or DEFAULT_SAMPLE_RATE)
        self.capture = AudioCapture(
            callback=self.buffer.on_audio_event,
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            input_device_index=input_device_index,
            error_callback=self._on_capture_error
        )
        self.closed = False
        self.error: Optional[Exception] = None

    def _on_capture_error(self, error: Exception) -> None:
        self.error = error
        if self.on_error:
            self.on_error(self, error)

    @property
    def sample_rate(self) -> int:
        return self.capture.sample_rate

    @property
    def is_recording(self) -> bool:
        return self.capture.is_recording

    def open(self) -> "CaptureSession":
        """Acquire the device and start capturing.

        Raises:
            DeviceAccessError: If the device cannot be opened; the session is closed.
        """
        if self.closed:
            raise RuntimeError(f"Capture session {self.session_id} already closed")
        try:
            self.capture.open_stream()
            self.buffer.sample_rate = self.capture.sample_rate
            self.capture.start_recording()
        except BaseException:
            self.close()
            raise
        logger.info(f"Capture session {self.session_id} started at {self.sample_rate}Hz")
        return self

    def halt(self) -> None:
        """Stop producing blocks without releasing the device."""
        self.capture.stop_recording()

    def encode(self) -> bytes:
        """Encode the blocks captured so far as a WAV container."""
        return encode_wav(self.buffer.snapshot(), self.sample_rate)

    def get_recording_stats(self) -> AudioStats:
        stats = self.capture.get_recording_stats()
        buffer_stats = self.buffer.get_buffer_stats()
        stats.total_samples = buffer_stats["total_samples"]
        stats.peak_level = buffer_stats["peak_level"]
        return stats

    def close(self) -> None:
        """Release the device and drop buffered blocks. Safe to call repeatedly."""
        if self.closed:
            return
        self.closed = True
        try:
            self.capture.release()
        finally:
            self.buffer.clear()
            logger.info(f"Capture session {self.session_id} closed")

    def __enter__(self) -> "CaptureSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

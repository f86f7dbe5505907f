"""Capture session manager: start/stop of microphone recordings."""

import logging
import threading
from typing import Callable, Optional

from ..models.audio import AudioStats, CaptureState
from ..models.events import CaptureStateEvent
from .capture import CaptureSession
from .status_pub import StatusPublisher

logger = logging.getLogger(__name__)


class CaptureSessionManager:
    """Owns at most one CaptureSession and guarantees its release."""

    def __init__(
        self,
        submit_callback: Optional[Callable[[bytes], None]] = None,
        sample_rate: Optional[int] = None,
        chunk_size: int = 4096,
        input_device_index: Optional[int] = None,
        status_publisher: Optional[StatusPublisher] = None,
    ):
        """Initialize capture session manager.

        Args:
            submit_callback: Receives the encoded WAV container when a recording stops
            sample_rate: Capture rate; None uses the device's native rate
            chunk_size: Samples per captured block
            input_device_index: PyAudio input device index; None for the default
            status_publisher: Optional publisher for capture state changes
        """
        self.submit_callback = submit_callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.input_device_index = input_device_index
        self.status_publisher = status_publisher

        self.session: Optional[CaptureSession] = None
        self.state = CaptureState.IDLE
        self.lock = threading.RLock()

    @property
    def is_recording(self) -> bool:
        return self.state == CaptureState.RECORDING

    def start(self) -> CaptureSession:
        """Release any previous session and start a new recording.

        Raises:
            DeviceAccessError: If the microphone cannot be opened
        """
        with self.lock:
            if self.session is not None:
                previous_id = self.session.session_id
                logger.info(f"Releasing previous capture session {previous_id}")
                self._release_session()
                self._set_state(CaptureState.IDLE, previous_id)

            session = CaptureSession(
                sample_rate=self.sample_rate,
                chunk_size=self.chunk_size,
                input_device_index=self.input_device_index,
                on_error=self._on_capture_error
            )
            session.open()

            self.session = session
            self._set_state(CaptureState.RECORDING, session.session_id)
            if session.error is not None:
                self._on_capture_error(session, session.error)
            return session

    def stop(self) -> Optional[bytes]:
        """Stop recording, encode the captured audio and hand it to the submit callback.

        The device is released and the buffer cleared whether or not encoding
        or submission succeed. Without an active session this does nothing.

        Returns:
            The encoded WAV container, or None if nothing was recording
        """
        with self.lock:
            session, self.session = self.session, None
            if session is None:
                logger.debug("stop() called with no active capture session")
                return None

            self._set_state(CaptureState.IDLE, session.session_id)
            try:
                session.halt()
                stats = session.get_recording_stats()
                container = session.encode()
            finally:
                session.close()

        logger.info(f"Recording {session.session_id} finished: {stats.total_samples} samples, "
                    f"{len(container)} bytes")
        if self.submit_callback is not None:
            self.submit_callback(container)
        return container

    def teardown(self) -> None:
        """Release the active session, if any, without submitting it."""
        with self.lock:
            if self.session is None:
                return
            session_id = self.session.session_id
            self._release_session()
            self._set_state(CaptureState.IDLE, session_id)

    def get_recording_stats(self) -> Optional[AudioStats]:
        """Get statistics for the active recording."""
        session = self.session
        if session is None:
            return None
        return session.get_recording_stats()

    def _release_session(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            session.close()

    def _on_capture_error(self, session: CaptureSession, error: Exception) -> None:
        # Runs on the capture thread; stop() may hold the lock while joining it
        if self.session is not session or self.state != CaptureState.RECORDING:
            return
        logger.error(f"Capture session {session.session_id} lost its input stream: {error}")
        self._set_state(CaptureState.IDLE, session.session_id, {"error": str(error)})

    def _set_state(self, state: CaptureState, session_id: Optional[str],
                   metadata: Optional[dict] = None) -> None:
        self.state = state
        if self.status_publisher:
            self.status_publisher.publish_capture_state(
                CaptureStateEvent(state=state, session_id=session_id, metadata=metadata or {}))

    def __del__(self):
        """Ensure resources are cleaned up on deletion."""
        if getattr(self, "session", None) is not None:
            self.teardown()

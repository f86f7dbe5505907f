"""Session-scoped sample buffer fed by the capture thread."""

import time
import logging
import threading
from typing import List, Optional

import numpy as np

from ..models.audio import AudioSampleBlock
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


class SampleBuffer:
    """Ordered, thread-safe list of captured sample blocks.

    The capture thread appends through ``on_audio_event`` while the session
    owner reads with ``snapshot`` and empties with ``clear``. Both sides take
    the same lock.
    """

    def __init__(self, sample_rate: int = 44100):
        """Initialize sample buffer.

        Args:
            sample_rate: Capture sample rate of the blocks stored here
        """
        self.sample_rate = sample_rate

        self.blocks: List[AudioSampleBlock] = []
        self.lock = threading.Lock()
        self.total_samples = 0
        self.peak_level = 0.0
        self.block_counter = 0
        self.start_time: Optional[float] = None

    def append(self, samples: np.ndarray, timestamp: Optional[float] = None) -> Optional[AudioSampleBlock]:
        """Append a block of samples. Empty blocks are ignored.

        Returns:
            The stored block, or None if nothing was stored
        """
        if samples is None or len(samples) == 0:
            return None

        current_time = timestamp if timestamp is not None else time.time()

        with self.lock:
            if self.start_time is None:
                self.start_time = current_time

            block = AudioSampleBlock(
                samples=samples,
                sequence_number=self.block_counter,
                timestamp=current_time,
                sample_rate=self.sample_rate
            )
            self.block_counter += 1
            self.blocks.append(block)
            self.total_samples += len(block)

            peak = float(np.max(np.abs(block.samples)))
            if peak > self.peak_level:
                self.peak_level = min(peak, 1.0)

            logger.debug(f"Added block {block.sequence_number}: {len(block)} samples, "
                        f"buffer now has {len(self.blocks)} blocks ({self.total_samples} samples)")
            return block

    def on_audio_event(self, event: AudioEvent) -> None:
        """Capture callback: store the samples carried by an audio event."""
        self.append(event.samples, event.timestamp)

    def snapshot(self) -> List[AudioSampleBlock]:
        """Return the blocks captured so far, in capture order."""
        with self.lock:
            return list(self.blocks)

    def __len__(self) -> int:
        with self.lock:
            return len(self.blocks)

    def get_buffer_stats(self) -> dict:
        """Get buffer statistics."""
        with self.lock:
            duration = self.total_samples / self.sample_rate if self.sample_rate else 0.0
            return {
                "block_count": len(self.blocks),
                "total_samples": self.total_samples,
                "duration_seconds": duration,
                "peak_level": self.peak_level,
                "sample_rate": self.sample_rate,
                "start_time": self.start_time
            }

    def clear(self) -> None:
        """Clear the buffer."""
        with self.lock:
            self.blocks.clear()
            self.total_samples = 0
            self.peak_level = 0.0
            self.block_counter = 0
            self.start_time = None
            logger.debug("Sample buffer cleared")

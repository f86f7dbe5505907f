"""Audio-related data models."""

from dataclasses import dataclass, field
from enum import Enum

import numpy as np


class CaptureState(Enum):
    """Capture state of the microphone."""
    IDLE = "idle"
    RECORDING = "recording"


@dataclass(frozen=True)
class AudioSampleBlock:
    """A single block of float32 samples captured from the input device."""
    samples: np.ndarray
    sequence_number: int
    timestamp: float  # Time when this block was captured
    sample_rate: int

    def __post_init__(self):
        samples = np.asarray(self.samples, dtype=np.float32).copy()
        samples.setflags(write=False)
        object.__setattr__(self, "samples", samples)

    def __len__(self) -> int:
        return len(self.samples)


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    total_samples: int
    peak_level: float = 0.0


@dataclass
class DecodedAudio:
    """PCM frames decoded from a WAV container, ready for playback."""
    frames: bytes = field(repr=False)
    channels: int
    sample_width: int  # Bytes per sample
    sample_rate: int
    frame_count: int

    @property
    def duration_seconds(self) -> float:
        if not self.sample_rate:
            return 0.0
        return self.frame_count / self.sample_rate

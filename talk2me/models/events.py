"""Event models published by the capture and playback components."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np

from .audio import CaptureState


@dataclass
class AudioEvent:
    """Captured audio block event with metadata."""
    chunk_id: str
    samples: np.ndarray = field(repr=False)
    timestamp: float  # Unix timestamp when block was captured
    sequence_number: int
    sample_rate: int = 44100
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate block duration if not provided."""
        if self.chunk_duration_ms is None and self.sample_rate:
            self.chunk_duration_ms = int(len(self.samples) / self.sample_rate * 1000)


@dataclass
class CaptureStateEvent:
    """Capture state transition."""
    state: CaptureState
    session_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PlaybackEvent:
    """Playback lifecycle event."""
    event_type: str  # "started", "stopped", "finished"
    playback_id: str
    duration_seconds: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

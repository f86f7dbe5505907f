"""WAV container encoding and decoding.

Recorded audio is sent to the completion API as a 16-bit mono PCM WAV file
with the standard 44-byte header::

    0  "RIFF"         4  36 + data bytes   8  "WAVE"
    12 "fmt "         16 16 (fmt size)     20 1 (PCM)
    22 channels       24 sample rate       28 byte rate
    32 block align    34 bits per sample   36 "data"
    40 data bytes     44 samples...

All integers are little-endian.
"""

import io
import wave
import logging
from typing import Iterable, Optional, Union

import numpy as np

from ..errors import EncodingInvariantViolation, PlaybackError
from ..models.audio import AudioSampleBlock, DecodedAudio

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_RATE = 44100
WAV_HEADER_SIZE = 44
CHANNELS = 1
SAMPLE_WIDTH = 2  # 16-bit

INT16_MIN = -32768
INT16_MAX = 32767


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Convert float samples in [-1, 1] to little-endian int16.

    Samples are clamped to [-1, 1] and scaled by 32768 when negative and
    32767 otherwise. Scaled values are rounded half away from zero. NaN is
    treated as silence.
    """
    values = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    values = np.clip(values, -1.0, 1.0)
    scaled = np.where(values < 0, values * 32768.0, values * 32767.0)
    rounded = np.trunc(scaled + np.copysign(0.5, scaled))

    if rounded.size and (rounded.min() < INT16_MIN or rounded.max() > INT16_MAX):
        if __debug__:
            raise EncodingInvariantViolation(
                f"PCM sample out of range: [{rounded.min()}, {rounded.max()}]")
        rounded = np.clip(rounded, INT16_MIN, INT16_MAX)

    return rounded.astype("<i2")


def encode_wav(blocks: Iterable[Union[AudioSampleBlock, np.ndarray]],
               sample_rate: Optional[int] = None) -> bytes:
    """Encode captured sample blocks as a mono 16-bit PCM WAV container.

    Args:
        blocks: Sample blocks in capture order
        sample_rate: Capture sample rate; DEFAULT_SAMPLE_RATE if unknown

    Returns:
        WAV bytes, exactly 44 + 2 * total sample count long
    """
    if not sample_rate or sample_rate <= 0:
        sample_rate = DEFAULT_SAMPLE_RATE
    sample_rate = int(sample_rate)

    arrays = [np.asarray(getattr(block, "samples", block), dtype=np.float32) for block in blocks]
    samples = np.concatenate(arrays) if arrays else np.zeros(0, dtype=np.float32)
    pcm = float_to_pcm16(samples)

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(CHANNELS)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.setnframes(len(pcm))
        wf.writeframes(pcm.tobytes())

    data = buffer.getvalue()
    logger.debug(f"Encoded WAV: {len(arrays)} blocks, {len(pcm)} samples, "
                 f"{sample_rate}Hz, {len(data)} bytes")
    return data


def decode_wav(data: bytes) -> DecodedAudio:
    """Decode a WAV container into raw PCM frames.

    Raises:
        PlaybackError: If the bytes are not a readable PCM WAV container
    """
    try:
        with wave.open(io.BytesIO(data), "rb") as wf:
            channels = wf.getnchannels()
            sample_width = wf.getsampwidth()
            sample_rate = wf.getframerate()
            frames = wf.readframes(wf.getnframes())
    except (wave.Error, EOFError, ValueError) as e:
        raise PlaybackError(f"Undecodable audio container: {e}") from e

    if channels < 1 or sample_width < 1 or sample_rate < 1:
        raise PlaybackError(f"Invalid audio format: {channels} channels, "
                            f"{sample_width * 8}-bit, {sample_rate}Hz")

    frame_count = len(frames) // (channels * sample_width)
    return DecodedAudio(
        frames=frames,
        channels=channels,
        sample_width=sample_width,
        sample_rate=sample_rate,
        frame_count=frame_count
    )

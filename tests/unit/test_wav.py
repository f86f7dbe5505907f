"""Unit tests for WAV encoding and decoding."""

import io
import struct
import wave

import numpy as np
import pytest

from talk2me.audio.wav import (
    WAV_HEADER_SIZE,
    decode_wav,
    encode_wav,
    float_to_pcm16,
)
from talk2me.errors import PlaybackError
from talk2me.models.audio import AudioSampleBlock

HEADER_FORMAT = '<4sI4s4sIHHIIHH4sI'


def unpack_header(data):
    return struct.unpack(HEADER_FORMAT, data[:WAV_HEADER_SIZE])


@pytest.mark.unit
class TestEncodeWav:
    """Test cases for encode_wav."""

    def test_zero_blocks_gives_empty_container(self):
        data = encode_wav([], 44100)

        assert len(data) == 44
        (riff, riff_size, wave_id, fmt_id, fmt_size, audio_format, channels,
         sample_rate, byte_rate, block_align, bits, data_id, data_size) = unpack_header(data)
        assert riff == b'RIFF'
        assert riff_size == 36
        assert wave_id == b'WAVE'
        assert fmt_id == b'fmt '
        assert fmt_size == 16
        assert audio_format == 1
        assert channels == 1
        assert sample_rate == 44100
        assert byte_rate == 88200
        assert block_align == 2
        assert bits == 16
        assert data_id == b'data'
        assert data_size == 0

    @pytest.mark.parametrize("block_sizes", [[1], [4096], [4096, 4096], [100, 2048, 7]])
    def test_length_matches_sample_count(self, block_sizes):
        blocks = [np.zeros(n, dtype=np.float32) for n in block_sizes]
        total = sum(block_sizes)

        data = encode_wav(blocks, 16000)

        assert len(data) == 44 + 2 * total
        header = unpack_header(data)
        assert header[1] == 36 + 2 * total
        assert header[12] == 2 * total

    def test_accepts_sample_blocks(self, sine_block):
        blocks = [AudioSampleBlock(samples=sine_block, sequence_number=i, timestamp=0.0, sample_rate=44100)
                  for i in range(3)]

        data = encode_wav(blocks, 44100)

        assert len(data) == 44 + 2 * 3 * len(sine_block)
        expected = float_to_pcm16(np.concatenate([sine_block] * 3)).tobytes()
        assert data[44:] == expected

    def test_unknown_sample_rate_defaults_to_44100(self):
        assert unpack_header(encode_wav([], None))[7] == 44100
        assert unpack_header(encode_wav([], 0))[7] == 44100

    def test_header_round_trip(self, sine_block):
        data = encode_wav([sine_block], 48000)

        with wave.open(io.BytesIO(data), 'rb') as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == 48000
            assert wf.getnframes() == len(sine_block)

    def test_deterministic(self, sine_block):
        assert encode_wav([sine_block], 44100) == encode_wav([sine_block], 44100)

    def test_samples_preserve_order(self):
        first = np.full(4, 0.25, dtype=np.float32)
        second = np.full(4, -0.25, dtype=np.float32)

        data = encode_wav([first, second], 8000)
        pcm = np.frombuffer(data[44:], dtype='<i2')

        assert list(pcm[:4]) == [8192] * 4
        assert list(pcm[4:]) == [-8192] * 4


@pytest.mark.unit
class TestFloatToPcm16:
    """Test cases for sample conversion."""

    def test_clamps_out_of_range(self):
        pcm = float_to_pcm16(np.array([-5.0, -1.0, 1.0, 5.0], dtype=np.float32))
        assert list(pcm) == [-32768, -32768, 32767, 32767]

    def test_asymmetric_scaling(self):
        pcm = float_to_pcm16(np.array([-0.5, 0.0, 0.5], dtype=np.float32))
        # 0.5 * 32767 = 16383.5 rounds away from zero
        assert list(pcm) == [-16384, 0, 16384]

    def test_within_rounding_tolerance(self):
        values = np.linspace(-1.0, 1.0, 1001, dtype=np.float32)
        pcm = float_to_pcm16(values).astype(np.int64)

        expected = np.where(values < 0, values.astype(np.float64) * 32768, values.astype(np.float64) * 32767)
        assert np.all(np.abs(pcm - expected) <= 1)
        assert pcm.min() >= -32768
        assert pcm.max() <= 32767

    def test_nan_is_silence(self):
        pcm = float_to_pcm16(np.array([np.nan, 0.25], dtype=np.float32))
        assert pcm[0] == 0

    def test_little_endian_output(self):
        pcm = float_to_pcm16(np.array([1.0], dtype=np.float32))
        assert pcm.tobytes() == b'\xff\x7f'


@pytest.mark.unit
class TestDecodeWav:
    """Test cases for decode_wav."""

    def test_decodes_encoded_container(self, sine_block):
        decoded = decode_wav(encode_wav([sine_block], 22050))

        assert decoded.channels == 1
        assert decoded.sample_width == 2
        assert decoded.sample_rate == 22050
        assert decoded.frame_count == len(sine_block)
        assert decoded.duration_seconds == pytest.approx(len(sine_block) / 22050)

    def test_garbage_raises_playback_error(self):
        with pytest.raises(PlaybackError):
            decode_wav(b'this is not a wav file at all, not even close....')

    def test_empty_bytes_raise_playback_error(self):
        with pytest.raises(PlaybackError):
            decode_wav(b'')

"""Canonical 44-byte RIFF/WAVE header for raw PCM tracks.

All tracks are mono, 16-bit, 48 kHz PCM. Multi-byte fields are little-endian.
"""
from __future__ import annotations

import struct

WAV_HEADER_SIZE = 44
SAMPLE_RATE = 48_000
NUM_CHANNELS = 1
BYTES_PER_SAMPLE = 2
BYTE_RATE = SAMPLE_RATE * NUM_CHANNELS * BYTES_PER_SAMPLE
BLOCK_ALIGN = NUM_CHANNELS * BYTES_PER_SAMPLE

_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")
# RIFF/WAVE data size fields are unsigned 32-bit
MAX_DATA_SIZE = 0xFFFFFFFF - (WAV_HEADER_SIZE - 8)


def build_wav_header(data_size: int) -> bytes:
    """Build the header for ``data_size`` bytes of raw PCM.

    Raises:
        ValueError: If ``data_size`` is negative or does not fit the RIFF size field.
    """
    if data_size < 0 or data_size > MAX_DATA_SIZE:
        msg = f"PCM payload of {data_size} bytes cannot be wrapped in a WAV header"
        raise ValueError(msg)

    return _HEADER_STRUCT.pack(
        b"RIFF",
        WAV_HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,  # PCM format chunk size
        1,  # PCM format tag
        NUM_CHANNELS,
        SAMPLE_RATE,
        BYTE_RATE,
        BLOCK_ALIGN,
        BYTES_PER_SAMPLE * 8,
        b"data",
        data_size,
    )


def wrap_pcm(pcm: bytes) -> bytes:
    return build_wav_header(len(pcm)) + pcm


def pcm_duration_seconds(data_size: int) -> float:
    return data_size / BYTE_RATE


def looks_like_wav(prefix: bytes) -> bool:
    return len(prefix) >= 12 and prefix[:4] == b"RIFF" and prefix[8:12] == b"WAVE"

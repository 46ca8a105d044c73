"""
WAVE wrapping for the raw 16-bit PCM returned by speech synthesis.

The upstream TTS model answers with headerless little-endian mono PCM
(``audio/L16;codec=pcm;rate=24000``). Players need a RIFF/WAVE container, so
the bytes are prefixed with the canonical 44-byte header.
"""

import re
import struct
from typing import Optional, Tuple

WAV_HEADER_SIZE = 44
PCM_FORMAT = 1
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
DEFAULT_SAMPLE_RATE = 24000

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_RATE_PATTERN = re.compile(r"rate=(\d+)", re.IGNORECASE)


def pcm16_to_wav(pcm: bytes, sample_rate: int = DEFAULT_SAMPLE_RATE) -> bytes:
    """Prefix mono 16-bit PCM with a 44-byte RIFF/WAVE header."""
    if sample_rate <= 0:
        raise ValueError("sample_rate must be positive")
    block_align = NUM_CHANNELS * BITS_PER_SAMPLE // 8
    header = _HEADER.pack(
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        NUM_CHANNELS,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        len(pcm),
    )
    return header + bytes(pcm)


def read_wav_header(wav: bytes) -> Tuple[int, int]:
    """
    Return ``(sample_rate, data_length)`` of a canonical PCM WAVE file.

    Raises:
        ValueError: if the bytes are not a 44-byte-header mono 16-bit PCM WAVE
    """
    if len(wav) < WAV_HEADER_SIZE:
        raise ValueError(f"WAVE data too short: {len(wav)} bytes")
    (riff, _, wave, fmt, fmt_size, audio_format, channels, sample_rate,
     _, _, bits, data_tag, data_length) = _HEADER.unpack_from(wav)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise ValueError("Not a canonical RIFF/WAVE header")
    if fmt_size != 16 or audio_format != PCM_FORMAT or channels != NUM_CHANNELS or bits != BITS_PER_SAMPLE:
        raise ValueError("Only mono 16-bit PCM WAVE is supported")
    return sample_rate, data_length


def wav_to_pcm16(wav: bytes) -> bytes:
    """Strip the header written by pcm16_to_wav."""
    _, data_length = read_wav_header(wav)
    return bytes(wav[WAV_HEADER_SIZE:WAV_HEADER_SIZE + data_length])


def parse_sample_rate(mime_type: Optional[str], default: int = DEFAULT_SAMPLE_RATE) -> int:
    """``audio/L16;codec=pcm;rate=24000`` -> 24000; default when absent."""
    if not mime_type:
        return default
    match = _RATE_PATTERN.search(mime_type)
    if not match:
        return default
    rate = int(match.group(1))
    return rate if rate > 0 else default

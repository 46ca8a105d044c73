"""
Tests for audio_utils.py - PCM16 to WAVE wrapping.
"""

import struct

import pytest

from audio_utils import (
    WAV_HEADER_SIZE,
    parse_sample_rate,
    pcm16_to_wav,
    read_wav_header,
    wav_to_pcm16,
)


class TestPcm16ToWav:

    def test_header_layout(self):
        pcm = b"\x00\x01" * 100
        wav = pcm16_to_wav(pcm, sample_rate=24000)

        assert len(wav) == WAV_HEADER_SIZE + len(pcm)
        assert wav[0:4] == b"RIFF"
        assert struct.unpack_from("<I", wav, 4)[0] == 36 + len(pcm)
        assert wav[8:16] == b"WAVEfmt "
        assert struct.unpack_from("<IHHIIHH", wav, 16) == (16, 1, 1, 24000, 48000, 2, 16)
        assert wav[36:40] == b"data"
        assert struct.unpack_from("<I", wav, 40)[0] == len(pcm)

    def test_round_trip(self):
        pcm = bytes(range(256)) * 4
        wav = pcm16_to_wav(pcm, sample_rate=16000)
        assert wav_to_pcm16(wav) == pcm
        assert read_wav_header(wav) == (16000, len(pcm))

    def test_empty_pcm(self):
        wav = pcm16_to_wav(b"")
        assert len(wav) == WAV_HEADER_SIZE
        assert wav_to_pcm16(wav) == b""

    def test_rejects_bad_sample_rate(self):
        with pytest.raises(ValueError):
            pcm16_to_wav(b"\x00\x00", sample_rate=0)


class TestWavToPcm16:

    def test_rejects_short_input(self):
        with pytest.raises(ValueError):
            wav_to_pcm16(b"RIFF")

    def test_rejects_non_wave(self):
        with pytest.raises(ValueError):
            wav_to_pcm16(b"X" * 60)


class TestParseSampleRate:

    @pytest.mark.parametrize("mime_type, expected", [
        ("audio/L16;codec=pcm;rate=24000", 24000),
        ("audio/L16; rate=16000", 16000),
        ("audio/L16", 24000),
        (None, 24000),
        ("", 24000),
        ("audio/L16;rate=0", 24000),
    ])
    def test_parses_rate(self, mime_type, expected):
        assert parse_sample_rate(mime_type) == expected

from __future__ import annotations

import enum
from pathlib import Path
from typing import BinaryIO

import numpy as np

from seqsynth.errors import WaveFormatError, WriteError
from seqsynth.pcm import PCM, PCMParameters

HEADER_SIZE = 44
PCM_FORMAT_TAG = 1


class SampleType(enum.Enum):
    UNSIGNED_8 = 8
    SIGNED_16 = 16
    SIGNED_32 = 32

    @classmethod
    def from_bits(cls, bits: int) -> SampleType:
        try:
            return cls(int(bits))
        except ValueError:
            raise ValueError(f"Unsupported sample width: {bits} bits (expected 8, 16 or 32).") from None

    @property
    def sample_size(self) -> int:
        return self.value // 8

    @property
    def max_value(self) -> float:
        if self is SampleType.UNSIGNED_8:
            return 255.0
        return float((1 << (self.value - 1)) - 1)

    @property
    def dtype(self) -> np.dtype:
        return np.dtype({8: "u1", 16: "<i2", 32: "<i4"}[self.value])


def _u16(value: int) -> bytes:
    return int(value).to_bytes(2, "little")


def _u32(value: int) -> bytes:
    return int(value).to_bytes(4, "little")


def _read_u16_le(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "little")


def _read_u32_le(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "little")


def wave_header(parameters: PCMParameters, sample_type: SampleType, sample_count: int) -> bytes:
    """Canonical 44-byte RIFF/WAVE header for ``sample_count`` interleaved samples."""
    data_size = sample_count * sample_type.sample_size
    block_align = parameters.channel_count * sample_type.sample_size
    byte_rate = parameters.sample_rate * block_align
    return b"".join(
        [
            b"RIFF",
            _u32(36 + data_size),
            b"WAVE",
            b"fmt ",
            _u32(16),
            _u16(PCM_FORMAT_TAG),
            _u16(parameters.channel_count),
            _u32(parameters.sample_rate),
            _u32(byte_rate),
            _u16(block_align),
            _u16(sample_type.value),
            b"data",
            _u32(data_size),
        ]
    )


def quantize(samples: np.ndarray, peak: float, sample_type: SampleType) -> np.ndarray:
    # A silent stream has nothing to scale by; keep it silent.
    normalized = samples / peak if peak > 0 else np.zeros_like(samples)
    normalized = np.clip(normalized, -1.0, 1.0)
    if sample_type is SampleType.UNSIGNED_8:
        scaled = ((normalized + 1.0) / 2.0) * sample_type.max_value
    else:
        scaled = normalized * sample_type.max_value
    # Round half away from zero.
    rounded = np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)
    return rounded.astype(np.int64).astype(sample_type.dtype)


def encode_wave(pcm: PCM, sample_type: SampleType = SampleType.SIGNED_16) -> bytes:
    """Peak-normalize ``pcm`` and serialize it as a linear-PCM WAVE file."""
    peak = pcm.peak()
    header = wave_header(pcm.parameters, sample_type, len(pcm))
    return header + quantize(pcm.samples, peak, sample_type).tobytes()


def write_wave(target: str | Path | BinaryIO, pcm: PCM, sample_type: SampleType = SampleType.SIGNED_16) -> int:
    payload = encode_wave(pcm, sample_type)
    try:
        if isinstance(target, (str, Path)):
            path = Path(target)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        else:
            target.write(payload)
    except OSError as exc:
        raise WriteError(f"Failed to write wave data: {exc}") from exc
    return len(payload)


def decode_wave(data: bytes) -> tuple[PCM, SampleType]:
    """Parse a canonical linear-PCM WAVE stream.

    Returned samples are mapped back to ``[-1, 1]``. Chunks other than
    ``fmt `` and ``data`` are skipped.
    """
    if len(data) < 12 or data[0:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise WaveFormatError("Missing RIFF/WAVE header.")

    offset = 12
    fmt: tuple[int, int, int] | None = None
    payload: bytes | None = None
    while offset + 8 <= len(data):
        chunk_id = data[offset : offset + 4]
        chunk_size = _read_u32_le(data, offset + 4)
        body = data[offset + 8 : offset + 8 + chunk_size]
        if len(body) != chunk_size:
            raise WaveFormatError(f"Unexpected EOF in {chunk_id!r} chunk.")
        if chunk_id == b"fmt ":
            if chunk_size < 16:
                raise WaveFormatError("fmt chunk too short.")
            if _read_u16_le(body, 0) != PCM_FORMAT_TAG:
                raise WaveFormatError("Only linear PCM (format tag 1) is supported.")
            fmt = (_read_u16_le(body, 2), _read_u32_le(body, 4), _read_u16_le(body, 14))
        elif chunk_id == b"data":
            payload = body
        offset += 8 + chunk_size + (chunk_size & 1)

    if fmt is None or payload is None:
        raise WaveFormatError("WAVE stream needs both fmt and data chunks.")
    channel_count, sample_rate, bits = fmt
    if channel_count == 0 or sample_rate == 0:
        raise WaveFormatError("fmt chunk declares zero channels or zero sample rate.")
    try:
        sample_type = SampleType.from_bits(bits)
    except ValueError as exc:
        raise WaveFormatError(str(exc)) from exc
    if len(payload) % (sample_type.sample_size * channel_count):
        raise WaveFormatError("data chunk is not a whole number of frames.")

    raw = np.frombuffer(payload, dtype=sample_type.dtype).astype(np.float64)
    if sample_type is SampleType.UNSIGNED_8:
        samples = (raw / sample_type.max_value) * 2.0 - 1.0
    else:
        samples = raw / sample_type.max_value
    params = PCMParameters(sample_rate=sample_rate, channel_count=channel_count)
    return PCM(parameters=params, samples=samples), sample_type


def read_wave(path: str | Path) -> tuple[PCM, SampleType]:
    return decode_wave(Path(path).read_bytes())

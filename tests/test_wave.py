import io
import tempfile
import unittest
from pathlib import Path

import numpy as np

from seqsynth.errors import NoSamplesError, WaveFormatError, WriteError
from seqsynth.pcm import PCM, PCMParameters
from seqsynth.wave import HEADER_SIZE, SampleType, decode_wave, encode_wave, read_wave, write_wave


def _u16(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 2], "little")


def _u32(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + 4], "little")


class _BrokenSink:
    def write(self, payload: bytes) -> int:
        raise OSError("disk full")


class TestWaveEncoding(unittest.TestCase):
    def test_header_layout(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=22050, channel_count=2), samples=np.zeros(10) + 0.1)
        data = encode_wave(pcm, SampleType.SIGNED_32)

        self.assertEqual(len(data), HEADER_SIZE + 40)
        self.assertEqual(data[0:4], b"RIFF")
        self.assertEqual(_u32(data, 4), 36 + 40)
        self.assertEqual(data[8:16], b"WAVEfmt ")
        self.assertEqual(_u32(data, 16), 16)
        self.assertEqual(_u16(data, 20), 1)
        self.assertEqual(_u16(data, 22), 2)
        self.assertEqual(_u32(data, 24), 22050)
        self.assertEqual(_u32(data, 28), 22050 * 2 * 4)
        self.assertEqual(_u16(data, 32), 8)
        self.assertEqual(_u16(data, 34), 32)
        self.assertEqual(data[36:40], b"data")
        self.assertEqual(_u32(data, 40), 40)

    def test_peak_maps_to_full_scale(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([0.0, 2.0, -4.0, 1.0]))
        data = encode_wave(pcm, SampleType.SIGNED_16)
        values = np.frombuffer(data[HEADER_SIZE:], dtype="<i2")
        np.testing.assert_array_equal(values, [0, 16384, -32767, 8192])

    def test_unsigned_8_quantization(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([-1.0, 0.0, 1.0]))
        data = encode_wave(pcm, SampleType.UNSIGNED_8)
        self.assertEqual(list(data[HEADER_SIZE:]), [0, 128, 255])
        self.assertEqual(_u16(data, 34), 8)
        self.assertEqual(_u16(data, 32), 1)

    def test_round_trip_within_one_step(self) -> None:
        samples = np.array([0.0, 0.25, -0.5, 2.0, -1.0, 0.3])
        expected = samples / 2.0
        pcm = PCM(parameters=PCMParameters(sample_rate=44100), samples=samples)
        for sample_type in SampleType:
            decoded, decoded_type = decode_wave(encode_wave(pcm, sample_type))
            step = 2.0 / sample_type.max_value if sample_type is SampleType.UNSIGNED_8 else 1.0 / sample_type.max_value
            self.assertIs(decoded_type, sample_type)
            self.assertEqual(decoded.parameters, pcm.parameters)
            self.assertLessEqual(float(np.max(np.abs(decoded.samples - expected))), step)
            self.assertAlmostEqual(float(decoded.samples[3]), 1.0, delta=step)

    def test_empty_pcm_cannot_be_encoded(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([]))
        with self.assertRaises(NoSamplesError):
            encode_wave(pcm)

    def test_silent_pcm_encodes_as_silence(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.zeros(4))
        data = encode_wave(pcm, SampleType.SIGNED_16)
        self.assertEqual(data[HEADER_SIZE:], bytes(8))

    def test_write_wave_to_path_and_stream(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([0.5, -0.5]))
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "out.wav"
            size = write_wave(path, pcm)
            self.assertEqual(size, HEADER_SIZE + 4)
            decoded, sample_type = read_wave(path)
        self.assertIs(sample_type, SampleType.SIGNED_16)
        np.testing.assert_allclose(decoded.samples, [1.0, -1.0])

        stream = io.BytesIO()
        write_wave(stream, pcm, SampleType.UNSIGNED_8)
        self.assertEqual(len(stream.getvalue()), HEADER_SIZE + 2)

    def test_sink_failure_is_write_error(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([0.5]))
        with self.assertRaises(WriteError):
            write_wave(_BrokenSink(), pcm)  # type: ignore[arg-type]

    def test_from_bits(self) -> None:
        self.assertIs(SampleType.from_bits(16), SampleType.SIGNED_16)
        with self.assertRaises(ValueError):
            SampleType.from_bits(24)


class TestWaveDecoding(unittest.TestCase):
    def test_rejects_non_wave_data(self) -> None:
        with self.assertRaises(WaveFormatError):
            decode_wave(b"not a wave file")

    def test_rejects_truncated_data_chunk(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([0.5, -0.5]))
        data = encode_wave(pcm)
        with self.assertRaises(WaveFormatError):
            decode_wave(data[:-1])

    def test_skips_unknown_chunks(self) -> None:
        pcm = PCM(parameters=PCMParameters(sample_rate=8000), samples=np.array([1.0, -1.0]))
        data = encode_wave(pcm)
        extra = b"LIST" + (3).to_bytes(4, "little") + b"abc" + b"\x00"
        patched = data[:36] + extra + data[36:]
        decoded, _ = decode_wave(patched)
        np.testing.assert_allclose(decoded.samples, [1.0, -1.0])


if __name__ == "__main__":
    unittest.main()

import unittest

import numpy as np

from seqsynth.instrument import KeyGenerator
from seqsynth.key_generators import (
    GENERATORS,
    NoiseGenerator,
    SawtoothWaveGenerator,
    SquareWaveGenerator,
    TriangleWaveGenerator,
    make_key_generator,
)
from seqsynth.time_model import Duration


class TestKeyGenerators(unittest.TestCase):
    # 8 samples per second at 2 Hz: one period is exactly 4 samples.

    def test_square_wave(self) -> None:
        key = SquareWaveGenerator().generate(8, 2.0, Duration(1.0))
        np.testing.assert_allclose(key.audio.samples, [1, 1, -1, -1, 1, 1, -1, -1])
        self.assertEqual(key.frequency, 2.0)
        self.assertEqual(key.audio.parameters.channel_count, 1)

    def test_triangle_wave(self) -> None:
        key = TriangleWaveGenerator().generate(8, 2.0, Duration(1.0))
        np.testing.assert_allclose(key.audio.samples, [0, 1, 0, -1, 0, 1, 0, -1], atol=1e-12)

    def test_sawtooth_wave(self) -> None:
        key = SawtoothWaveGenerator().generate(8, 2.0, Duration(1.0))
        np.testing.assert_allclose(key.audio.samples, [1, 0.5, 0, -0.5, 1, 0.5, 0, -0.5], atol=1e-12)

    def test_key_length_follows_duration(self) -> None:
        key = SquareWaveGenerator().generate(8000, 440.0, Duration(0.5))
        self.assertEqual(len(key.audio), 4000)
        self.assertEqual(key.audio.parameters.sample_rate, 8000)

    def test_noise_is_bounded_and_seedable(self) -> None:
        a = NoiseGenerator(seed=7).generate(1000, 1.0, Duration(1.0))
        b = NoiseGenerator(seed=7).generate(1000, 1.0, Duration(1.0))
        self.assertEqual(len(a.audio), 1000)
        self.assertTrue(np.all(a.audio.samples >= -1.0))
        self.assertTrue(np.all(a.audio.samples < 1.0))
        np.testing.assert_array_equal(a.audio.samples, b.audio.samples)

    def test_make_key_generator_by_name(self) -> None:
        for name in GENERATORS:
            self.assertIsInstance(make_key_generator(name), KeyGenerator)
        self.assertIsInstance(make_key_generator("triangle"), TriangleWaveGenerator)
        with self.assertRaises(ValueError):
            make_key_generator("organ")


if __name__ == "__main__":
    unittest.main()

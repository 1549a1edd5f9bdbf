from __future__ import annotations

from collections.abc import Callable

import numpy as np

from seqsynth.instrument import Key, KeyGenerator
from seqsynth.pcm import PCM, PCMParameters
from seqsynth.time_model import Duration


def _sample_positions(sample_rate: int, duration: Duration) -> np.ndarray:
    n = int(duration.value * sample_rate)
    return np.arange(n, dtype=np.float64) / float(sample_rate)


def _mono_key(samples: np.ndarray, sample_rate: int, frequency: float) -> Key:
    audio = PCM(parameters=PCMParameters(sample_rate=sample_rate, channel_count=1), samples=samples)
    return Key(audio=audio, frequency=float(frequency))


class SquareWaveGenerator:
    def generate(self, sample_rate: int, frequency: float, duration: Duration) -> Key:
        period = 1.0 / frequency
        phase = np.mod(_sample_positions(sample_rate, duration), period)
        samples = np.where(phase < period / 2.0, 1.0, -1.0)
        return _mono_key(samples, sample_rate, frequency)


class TriangleWaveGenerator:
    def generate(self, sample_rate: int, frequency: float, duration: Duration) -> Key:
        period = 1.0 / frequency
        quarter = period / 4.0
        slope = 4.0 / period
        phase = np.mod(_sample_positions(sample_rate, duration), period)
        samples = np.select(
            [phase < quarter, phase < 3.0 * quarter],
            [phase * slope, 1.0 - (phase - quarter) * slope],
            default=(phase - 3.0 * quarter) * slope - 1.0,
        )
        return _mono_key(samples, sample_rate, frequency)


class SawtoothWaveGenerator:
    def generate(self, sample_rate: int, frequency: float, duration: Duration) -> Key:
        period = 1.0 / frequency
        phase = np.mod(_sample_positions(sample_rate, duration), period)
        samples = 1.0 - phase * (2.0 / period)
        return _mono_key(samples, sample_rate, frequency)


class NoiseGenerator:
    """White noise, uniform in ``[-1, 1)``. Pass a seed for reproducible keys."""

    def __init__(self, seed: int | None = None, rng: np.random.Generator | None = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def generate(self, sample_rate: int, frequency: float, duration: Duration) -> Key:
        n = int(duration.value * sample_rate)
        samples = self.rng.uniform(-1.0, 1.0, size=n)
        return _mono_key(samples, sample_rate, frequency)


GENERATORS: dict[str, Callable[[], KeyGenerator]] = {
    "square": SquareWaveGenerator,
    "triangle": TriangleWaveGenerator,
    "sawtooth": SawtoothWaveGenerator,
    "noise": NoiseGenerator,
}


def make_key_generator(name: str) -> KeyGenerator:
    try:
        factory = GENERATORS[name]
    except KeyError:
        raise ValueError(f"Unknown waveform: {name!r}. Expected one of {sorted(GENERATORS)}.") from None
    return factory()

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from seqsynth.errors import NoSamplesError
from seqsynth.time_model import TimeSpan


def seconds_to_samples(seconds: float, sample_rate: int) -> int:
    """Nearest sample index for a non-negative time; halves round up."""
    return int(math.floor(seconds * sample_rate + 0.5))


@dataclass(frozen=True)
class PCMParameters:
    sample_rate: int
    channel_count: int = 1

    def __post_init__(self) -> None:
        if int(self.sample_rate) <= 0:
            raise ValueError("PCMParameters sample_rate must be > 0.")
        if int(self.channel_count) <= 0:
            raise ValueError("PCMParameters channel_count must be > 0.")
        object.__setattr__(self, "sample_rate", int(self.sample_rate))
        object.__setattr__(self, "channel_count", int(self.channel_count))


@dataclass(eq=False)
class PCM:
    """Float PCM stream, samples interleaved by channel.

    Instrument keys hold audio normalized to ``[-1, 1]``. Synthesizer output
    is left unnormalized; the wave encoder scales it by its peak.
    """

    parameters: PCMParameters
    samples: np.ndarray
    loop_info: list[TimeSpan] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.float64).reshape(-1)
        if self.samples.size % self.parameters.channel_count:
            raise ValueError("PCM sample count must be a multiple of channel_count.")

    def __len__(self) -> int:
        return int(self.samples.size)

    @property
    def frame_count(self) -> int:
        return int(self.samples.size // self.parameters.channel_count)

    @property
    def duration_s(self) -> float:
        return self.frame_count / float(self.parameters.sample_rate)

    def frames(self) -> np.ndarray:
        return self.samples.reshape(self.frame_count, self.parameters.channel_count)

    def peak(self) -> float:
        if self.samples.size == 0:
            raise NoSamplesError()
        return float(np.max(np.abs(self.samples)))

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np

from seqsynth.errors import NoKeyInInstrumentError
from seqsynth.frequency import FrequencyResolver
from seqsynth.pcm import PCM, seconds_to_samples
from seqsynth.time_model import Duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Key:
    """Mono audio for one pitch of one instrument, reused by every note at that pitch."""

    audio: PCM
    frequency: float

    def __post_init__(self) -> None:
        if self.audio.parameters.channel_count != 1:
            raise ValueError("Key audio must be mono.")


@runtime_checkable
class KeyGenerator(Protocol):
    def generate(self, sample_rate: int, frequency: float, duration: Duration) -> Key:
        """Synthesize a key.

        ``duration`` is the longest time any note will hold this key. Periodic
        generators may use it to size the key; sampled sources may ignore it.
        Must never fail and must return mono audio.
        """
        ...


class Instrument:
    """Renders notes from a cache of keys indexed by frequency ID.

    Keys are synthesized in bulk by ``generate_keys`` before any call to
    ``render``; after that the cache is only read.
    """

    def __init__(self, key_generator: KeyGenerator, loopable: bool = True):
        self.key_generator = key_generator
        self.loopable = bool(loopable)
        self.keys: dict[int, Key] = {}

    def generate_keys(
        self,
        sample_rate: int,
        demand: Iterable[tuple[int, Duration]],
        resolver: FrequencyResolver,
    ) -> None:
        for frequency_id, duration in demand:
            frequency = resolver.resolve(frequency_id)
            self.keys[frequency_id] = self.key_generator.generate(sample_rate, frequency, duration)
            logger.debug(
                "Generated key id=%d freq=%.3fHz samples=%d",
                frequency_id,
                frequency,
                len(self.keys[frequency_id].audio),
            )

    def render(self, frequency_id: int, duration: Duration) -> PCM:
        key = self.keys.get(frequency_id)
        if key is None:
            raise NoKeyInInstrumentError(frequency_id)

        params = key.audio.parameters
        sample_count = seconds_to_samples(duration.value, params.sample_rate)
        key_samples = key.audio.samples
        if key_samples.size == 0 or sample_count == 0:
            return PCM(parameters=params, samples=np.zeros(sample_count, dtype=np.float64))

        if self.loopable:
            # The last key sample is never played: it doubles as the first one.
            loop_length = max(1, key_samples.size - 1)
            out = key_samples[np.arange(sample_count) % loop_length]
        else:
            out = np.zeros(sample_count, dtype=np.float64)
            n = min(sample_count, key_samples.size)
            out[:n] = key_samples[:n]
        return PCM(parameters=params, samples=out)

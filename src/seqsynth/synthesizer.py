from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from collections.abc import Sequence as SequenceABC
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from seqsynth.errors import NoInstrumentError
from seqsynth.frequency import FrequencyResolver
from seqsynth.instrument import Instrument
from seqsynth.pcm import PCM, PCMParameters, seconds_to_samples
from seqsynth.sequence import Note, Sequence
from seqsynth.time_model import Duration, Force, as_force

logger = logging.getLogger(__name__)

DEFAULT_FALLOFF_SAMPLES = 100

ChannelGains = Callable[[Note, int], SequenceABC[Force | float]]


def velocity_channel_gains(note: Note, channel_count: int) -> list[Force]:
    """Same gain on every channel: the press velocity, or full volume when unknown."""
    gain = note.velocity.on if note.velocity.on is not None else Force(1.0)
    return [gain] * channel_count


def apply_falloff(samples: np.ndarray, falloff_samples: int = DEFAULT_FALLOFF_SAMPLES) -> np.ndarray:
    """Fade the last ``falloff_samples`` samples linearly from 1 to 0.

    The final sample always ends at 0; a one-sample window just silences it.
    Fragments shorter than the window are returned unchanged. The input
    array is never modified.
    """
    out = np.array(samples, dtype=np.float64, copy=True)
    if falloff_samples <= 0 or out.size < falloff_samples:
        return out
    if falloff_samples == 1:
        out[-1] = 0.0
        return out
    out[-falloff_samples:] *= np.linspace(1.0, 0.0, falloff_samples)
    return out


class Synthesizer:
    """Mixes a ``Sequence`` into one interleaved PCM stream.

    Every note is rendered by its instrument independently and added into the
    output buffer, so the result does not depend on note order. With
    ``max_workers`` > 1 notes are rendered on a thread pool; accumulation
    stays on the calling thread.
    """

    def __init__(
        self,
        sequence: Sequence,
        instruments: Mapping[int, Instrument],
        frequency_resolver: FrequencyResolver,
        parameters: PCMParameters,
        channel_gains: ChannelGains | None = None,
        falloff_samples: int = DEFAULT_FALLOFF_SAMPLES,
        max_workers: int | None = None,
    ):
        if falloff_samples < 0:
            raise ValueError("falloff_samples must be >= 0.")
        if max_workers is not None and max_workers <= 0:
            raise ValueError("max_workers must be > 0 when provided.")
        self.sequence = sequence
        self.instruments = dict(instruments)
        self.frequency_resolver = frequency_resolver
        self.parameters = parameters
        self.channel_gains = channel_gains or velocity_channel_gains
        self.falloff_samples = int(falloff_samples)
        self.max_workers = max_workers

    def _instrument_for(self, instrument_id: int) -> Instrument:
        instrument = self.instruments.get(instrument_id)
        if instrument is None:
            raise NoInstrumentError(instrument_id)
        return instrument

    def _gains_for(self, note: Note) -> np.ndarray:
        channel_count = self.parameters.channel_count
        gains = [as_force(g).value for g in self.channel_gains(note, channel_count)]
        if len(gains) != channel_count:
            raise ValueError(f"Expected {channel_count} channel gains, got {len(gains)}.")
        return np.asarray(gains, dtype=np.float64)

    def generate_keys(self) -> None:
        # An Instrument shared by several IDs gets one key per frequency,
        # sized for the longest note among all of them.
        merged: dict[int, tuple[Instrument, dict[int, Duration]]] = {}
        for instrument_id, frequencies in self.sequence.frequencies_by_instrument().items():
            instrument = self._instrument_for(instrument_id)
            _, longest = merged.setdefault(id(instrument), (instrument, {}))
            for frequency_id, duration in frequencies:
                known = longest.get(frequency_id)
                if known is None or duration > known:
                    longest[frequency_id] = duration

        for instrument, longest in merged.values():
            instrument.generate_keys(self.parameters.sample_rate, list(longest.items()), self.frequency_resolver)
            logger.debug("Instrument %#x: %d key(s) ready", id(instrument), len(longest))

    def render_note(self, note: Note) -> np.ndarray:
        """Mono samples of one note with falloff applied."""
        instrument = self._instrument_for(note.instrument_id)
        pcm = instrument.render(note.frequency_id, note.t_span.duration)
        return apply_falloff(pcm.samples, self.falloff_samples)

    def _mix_into(self, frames: np.ndarray, note: Note, samples: np.ndarray, gains: np.ndarray) -> None:
        start = seconds_to_samples(note.t_span.start_at.value, self.parameters.sample_rate)
        end = min(start + samples.size, frames.shape[0])
        if end <= start:
            return
        frames[start:end, :] += samples[: end - start, np.newaxis] * gains[np.newaxis, :]

    def run(self) -> PCM:
        self.sequence.sort_by_time()
        total_duration = self.sequence.total_duration()
        self.generate_keys()

        sample_rate = self.parameters.sample_rate
        channel_count = self.parameters.channel_count
        frame_count = seconds_to_samples(total_duration.value, sample_rate)
        frames = np.zeros((frame_count, channel_count), dtype=np.float64)
        notes = list(self.sequence.notes)
        gains = [self._gains_for(note) for note in notes]

        if self.max_workers is not None and self.max_workers > 1 and len(notes) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                rendered = list(pool.map(self.render_note, notes))
        else:
            rendered = [self.render_note(note) for note in notes]

        for note, samples, note_gains in zip(notes, rendered, gains):
            self._mix_into(frames, note, samples, note_gains)

        logger.info(
            "Mixed %d note(s) into %d frame(s) at %d Hz x %d channel(s)",
            len(notes),
            frame_count,
            sample_rate,
            channel_count,
        )
        return PCM(
            parameters=self.parameters,
            samples=frames.reshape(-1),
            loop_info=list(self.sequence.loop_info),
        )

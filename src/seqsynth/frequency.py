from __future__ import annotations

import math
import sys
from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

from seqsynth.errors import NoFrequencyForIDError

A4_FREQUENCY_HZ = 440.0
A4_MIDI_NOTE = 69


@runtime_checkable
class FrequencyResolver(Protocol):
    """Maps an opaque frequency ID to a frequency in Hz."""

    def resolve(self, frequency_id: int) -> float: ...


def _validated_frequency(freq_hz: float) -> float:
    value = float(freq_hz)
    if not (math.isfinite(value) and value > 0.0):
        raise ValueError(f"Frequency must be a positive finite value, got {freq_hz!r}")
    return value


def midi_note_to_frequency(midi_note: int, a4_hz: float = A4_FREQUENCY_HZ) -> float:
    return float(a4_hz * (2.0 ** ((midi_note - A4_MIDI_NOTE) / 12.0)))


class MidiFrequencyResolver:
    """Equal-tempered tuning where the ID is a MIDI note number."""

    def __init__(self, a4_hz: float = A4_FREQUENCY_HZ):
        self.a4_hz = _validated_frequency(a4_hz)

    def resolve(self, frequency_id: int) -> float:
        if frequency_id < 0:
            raise NoFrequencyForIDError(frequency_id)
        return midi_note_to_frequency(frequency_id, a4_hz=self.a4_hz)


class TableFrequencyResolver:
    """Explicit lookup table owned by the caller.

    Built either from a list (the index is the ID) or from a mapping of
    ID to frequency. ``id_for`` grows the table on demand, which makes the
    resolver usable as a frequency registry while importing note data.
    """

    def __init__(self, frequencies: Iterable[float] | Mapping[int, float] = ()):
        self._table: dict[int, float] = {}
        if isinstance(frequencies, Mapping):
            for frequency_id, freq_hz in frequencies.items():
                self._table[int(frequency_id)] = _validated_frequency(freq_hz)
        else:
            for frequency_id, freq_hz in enumerate(frequencies):
                self._table[frequency_id] = _validated_frequency(freq_hz)

    def __len__(self) -> int:
        return len(self._table)

    def resolve(self, frequency_id: int) -> float:
        try:
            return self._table[frequency_id]
        except KeyError:
            raise NoFrequencyForIDError(frequency_id) from None

    def id_for(self, freq_hz: float) -> int:
        value = _validated_frequency(freq_hz)
        for frequency_id, known in self._table.items():
            if abs(known - value) < sys.float_info.epsilon:
                return frequency_id
        next_id = max(self._table, default=-1) + 1
        self._table[next_id] = value
        return next_id

from __future__ import annotations

from dataclasses import dataclass, field

from seqsynth.errors import EmptySequenceError
from seqsynth.time_model import Duration, Force, TimeSpan


@dataclass(frozen=True)
class Velocity:
    """Press and release velocity of a note; either may be unknown."""

    on: Force | None = None
    off: Force | None = None


@dataclass(frozen=True)
class Note:
    """One note played by one instrument over a time span.

    - ``frequency_id`` is resolved to Hz by the synthesizer's frequency resolver.
    - ``instrument_id`` selects the instrument that renders the note.
    """

    t_span: TimeSpan
    frequency_id: int
    instrument_id: int
    velocity: Velocity = field(default_factory=Velocity)

    def __post_init__(self) -> None:
        if self.frequency_id < 0:
            raise ValueError("Note frequency_id must be >= 0.")
        if self.instrument_id < 0:
            raise ValueError("Note instrument_id must be >= 0.")


@dataclass
class Sequence:
    notes: list[Note] = field(default_factory=list)
    loop_info: list[TimeSpan] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.notes)

    def add_note(self, note: Note) -> None:
        self.notes.append(note)

    def sort_by_time(self) -> None:
        self.notes.sort(key=lambda n: n.t_span.start_at)

    def total_duration(self) -> Duration:
        if not self.notes:
            raise EmptySequenceError()
        last_end = max(note.t_span.end_at for note in self.notes)
        return Duration(last_end.value)

    def frequencies_by_instrument(self) -> dict[int, list[tuple[int, Duration]]]:
        """Distinct frequency IDs per instrument with the longest duration each needs.

        IDs keep the order in which they first appear in ``notes``.
        """
        longest: dict[int, dict[int, Duration]] = {}
        for note in self.notes:
            per_instrument = longest.setdefault(note.instrument_id, {})
            duration = note.t_span.duration
            known = per_instrument.get(note.frequency_id)
            if known is None or duration > known:
                per_instrument[note.frequency_id] = duration
        return {instrument_id: list(durations.items()) for instrument_id, durations in longest.items()}

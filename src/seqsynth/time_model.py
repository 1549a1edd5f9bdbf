from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import total_ordering

from seqsynth.errors import ForceInvalidError, TimeInvalidError


@total_ordering
@dataclass(frozen=True, eq=False)
class Time:
    """Absolute point in time, in seconds.

    The only way to obtain a ``Time`` is through the constructor, which
    rejects NaN, infinities and negative values with ``TimeInvalidError``.
    Any two ``Time`` values (``Duration`` included) compare by value, so
    ``sorted`` and ``max`` work directly.
    """

    value: float

    def __post_init__(self) -> None:
        try:
            value = float(self.value)
        except (TypeError, ValueError) as exc:
            raise TimeInvalidError(self.value) from exc
        if not (math.isfinite(value) and value >= 0.0):
            raise TimeInvalidError(value)
        object.__setattr__(self, "value", value)

    def __float__(self) -> float:
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Time):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Time):
            return NotImplemented
        return self.value < other.value


@dataclass(frozen=True, eq=False)
class Duration(Time):
    """Length of an interval in seconds. Same invariant as ``Time``."""


@total_ordering
@dataclass(frozen=True)
class Force:
    """Normalized press/release velocity or channel gain in ``[0, 1]``."""

    value: float

    def __post_init__(self) -> None:
        try:
            value = float(self.value)
        except (TypeError, ValueError) as exc:
            raise ForceInvalidError(self.value) from exc
        if not (math.isfinite(value) and 0.0 <= value <= 1.0):
            raise ForceInvalidError(value)
        object.__setattr__(self, "value", value)

    def __float__(self) -> float:
        return self.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Force):
            return NotImplemented
        return self.value < other.value


Volume = Force


def as_time(value: Time | float) -> Time:
    return value if isinstance(value, Time) else Time(value)


def as_duration(value: Time | float) -> Duration:
    if isinstance(value, Duration):
        return value
    return Duration(float(value))


def as_force(value: Force | float) -> Force:
    return value if isinstance(value, Force) else Force(value)


@dataclass(frozen=True)
class TimeSpan:
    """Non-empty interval ``[start_at, end_at)`` on the sequence timeline.

    Use ``TimeSpan.between`` or ``TimeSpan.starting_at``; both derive the
    third field. A span never has a zero, negative or non-finite length.
    """

    start_at: Time
    end_at: Time
    duration: Duration = field(compare=False)

    def __post_init__(self) -> None:
        if not (isinstance(self.start_at, Time) and isinstance(self.end_at, Time)):
            raise TypeError("TimeSpan bounds must be Time instances.")
        if not isinstance(self.duration, Duration):
            raise TypeError("TimeSpan duration must be a Duration instance.")
        if not self.duration.value > 0.0:
            raise TimeInvalidError(self.duration.value, "TimeSpan duration must be > 0.")
        expected_end = self.start_at.value + self.duration.value
        if not math.isclose(expected_end, self.end_at.value, rel_tol=1e-12, abs_tol=1e-12):
            raise TimeInvalidError(self.end_at.value, "TimeSpan end_at must equal start_at + duration.")

    @classmethod
    def between(cls, start_at: Time | float, end_at: Time | float) -> TimeSpan:
        start = as_time(start_at)
        end = as_time(end_at)
        length = end.value - start.value
        if not (math.isfinite(length) and length > 0.0):
            raise TimeInvalidError(length, f"TimeSpan length must be > 0, got {length!r}")
        return cls(start_at=start, end_at=end, duration=Duration(length))

    @classmethod
    def starting_at(cls, start_at: Time | float, duration: Time | float) -> TimeSpan:
        start = as_time(start_at)
        length = as_duration(duration)
        if not length.value > 0.0:
            raise TimeInvalidError(length.value, f"TimeSpan length must be > 0, got {length.value!r}")
        end_value = start.value + length.value
        if not math.isfinite(end_value):
            raise TimeInvalidError(end_value)
        return cls(start_at=start, end_at=Time(end_value), duration=length)

    def contains(self, t: Time | float) -> bool:
        value = float(t)
        return self.start_at.value <= value < self.end_at.value

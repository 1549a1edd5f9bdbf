from __future__ import annotations


class SeqSynthError(Exception):
    """Base error for the seqsynth library."""


class TimeInvalidError(SeqSynthError, ValueError):
    """Raised when a value cannot be used as a time, duration, or span length."""

    def __init__(self, value: float, message: str | None = None) -> None:
        self.value = value
        super().__init__(message or f"Invalid time value: {value!r}")


class ForceInvalidError(SeqSynthError, ValueError):
    """Raised when a force/volume is non-finite or outside [0, 1]."""

    def __init__(self, value: float) -> None:
        self.value = value
        super().__init__(f"Force must be a finite value in [0, 1], got {value!r}")


class NoFrequencyForIDError(SeqSynthError, LookupError):
    def __init__(self, frequency_id: int) -> None:
        self.frequency_id = frequency_id
        super().__init__(f"No frequency for ID {frequency_id}")


class EmptySequenceError(SeqSynthError):
    def __init__(self) -> None:
        super().__init__("Sequence has no notes.")


class NoInstrumentError(SeqSynthError, LookupError):
    def __init__(self, instrument_id: int) -> None:
        self.instrument_id = instrument_id
        super().__init__(f"No instrument with ID {instrument_id}")


class NoKeyInInstrumentError(SeqSynthError, LookupError):
    def __init__(self, frequency_id: int) -> None:
        self.frequency_id = frequency_id
        super().__init__(f"Instrument has no key for frequency ID {frequency_id}")


class NoSamplesError(SeqSynthError):
    def __init__(self) -> None:
        super().__init__("PCM stream has no samples.")


class WriteError(SeqSynthError):
    """Raised when the byte sink of the wave encoder fails."""


class WaveFormatError(SeqSynthError, ValueError):
    """Raised when bytes are not a canonical linear-PCM WAVE stream."""


class ConfigError(SeqSynthError, ValueError):
    """Raised when a config file has an unknown section, key, or a non-object section."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")

"""Exception hierarchy for loudness measurement."""
from __future__ import annotations


class LoudQCError(Exception):
    """Base class for measurement errors."""


class UnsupportedFormatError(LoudQCError):
    """The native decoder cannot open the codec or container."""


class DecodeError(LoudQCError):
    """Decoding started but failed or produced no audio."""


class EngineError(LoudQCError):
    """The media engine could not be run or returned an error."""


class SummaryParseError(LoudQCError):
    """The loudness filter output has no usable summary block."""


class DurationExceededError(LoudQCError):
    """The decoded buffer is too long for in-process measurement."""

    def __init__(self, duration_s: float, limit_s: float):
        super().__init__(
            f"duration {duration_s:.1f}s exceeds in-process limit of {limit_s:.0f}s"
        )
        self.duration_s = duration_s
        self.limit_s = limit_s

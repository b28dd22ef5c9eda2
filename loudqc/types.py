from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Sequence
import numpy as np

# Distinguished "unmeasured" markers; never physical readings.
UNMEASURED_LUFS = -99.0
UNMEASURED_DBTP = 0.0
SILENCE_LUFS = -70.0
PEAK_FLOOR_DBTP = -99.0


class ChannelPosition(str, Enum):
    LEFT = "L"
    RIGHT = "R"
    CENTER = "C"
    LFE = "LFE"
    LEFT_SURROUND = "Ls"
    RIGHT_SURROUND = "Rs"


CHANNEL_WEIGHTS: dict[ChannelPosition, float] = {
    ChannelPosition.LEFT: 1.0,
    ChannelPosition.RIGHT: 1.0,
    ChannelPosition.CENTER: 1.0,
    ChannelPosition.LEFT_SURROUND: 1.41,
    ChannelPosition.RIGHT_SURROUND: 1.41,
}

MAX_WEIGHTED_CHANNELS = 5


class GateStage(str, Enum):
    UNGATED = "ungated"
    ABSOLUTE = "absolute-gated"
    RELATIVE = "relative-gated"


class TierStatus(str, Enum):
    SUCCESS = "success"
    UNSUPPORTED = "unsupported"
    EXTRACTION_FAILED = "extraction_failed"
    DURATION_EXCEEDED = "duration_exceeded"
    PARSE_FAILED = "parse_failed"


@dataclass(frozen=True)
class SampleBuffer:
    """Decoded PCM: one float32 array per channel at a common sample rate."""
    channels: tuple[np.ndarray, ...]
    fs: float
    backend: str = "unknown"
    warnings: tuple[str, ...] = ()

    def __post_init__(self):
        if self.fs <= 0:
            raise ValueError("Sample rate must be positive.")
        if not self.channels:
            raise ValueError("SampleBuffer needs at least one channel.")
        lengths = {int(np.asarray(ch).shape[0]) for ch in self.channels}
        if len(lengths) != 1:
            raise ValueError("All channel arrays must have equal length.")

    @classmethod
    def from_frames(cls, frames: np.ndarray, fs: float, **kwargs) -> "SampleBuffer":
        """Build from an interleaved (samples, channels) or 1D array."""
        x = np.asarray(frames, dtype=np.float32)
        if x.ndim == 1:
            x = x[:, None]
        if x.ndim != 2:
            raise ValueError("Frames must be a 1D or 2D array.")
        chans = tuple(np.ascontiguousarray(x[:, i]) for i in range(x.shape[1]))
        return cls(channels=chans, fs=float(fs), **kwargs)

    @property
    def num_channels(self) -> int:
        return len(self.channels)

    @property
    def num_samples(self) -> int:
        return int(np.asarray(self.channels[0]).shape[0])

    @property
    def duration(self) -> float:
        return self.num_samples / float(self.fs)


@dataclass(frozen=True)
class EnergyBlock:
    start: int
    energy: float


@dataclass(frozen=True)
class LoudnessResult:
    integrated_lufs: float
    true_peak_dbtp: float
    tier: str | None = None
    algorithm_ids: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def measured(self) -> bool:
        return not (
            self.integrated_lufs == UNMEASURED_LUFS
            and self.true_peak_dbtp == UNMEASURED_DBTP
        )

    def to_dict(self) -> dict:
        return {
            "integrated_lufs": self.integrated_lufs,
            "true_peak_dbtp": self.true_peak_dbtp,
            "measured": self.measured,
            "tier": self.tier,
            "algorithm_ids": list(self.algorithm_ids),
            "warnings": list(self.warnings),
        }


def unmeasured(warnings: Sequence[str] = ()) -> LoudnessResult:
    """Return the not-measurable sentinel."""
    return LoudnessResult(
        integrated_lufs=UNMEASURED_LUFS,
        true_peak_dbtp=UNMEASURED_DBTP,
        warnings=tuple(warnings),
    )


@dataclass(frozen=True)
class TierOutcome:
    """Tagged result of one tier attempt."""
    status: TierStatus
    buffer: SampleBuffer | None = None
    result: LoudnessResult | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == TierStatus.SUCCESS

    @classmethod
    def success(cls, payload: SampleBuffer | LoudnessResult) -> "TierOutcome":
        if isinstance(payload, LoudnessResult):
            return cls(TierStatus.SUCCESS, result=payload)
        return cls(TierStatus.SUCCESS, buffer=payload)

    @classmethod
    def unsupported(cls, reason: str = "") -> "TierOutcome":
        return cls(TierStatus.UNSUPPORTED, reason=reason)

    @classmethod
    def extraction_failed(cls, reason: str) -> "TierOutcome":
        return cls(TierStatus.EXTRACTION_FAILED, reason=reason)

    @classmethod
    def duration_exceeded(cls, reason: str = "") -> "TierOutcome":
        return cls(TierStatus.DURATION_EXCEEDED, reason=reason)

    @classmethod
    def parse_failed(cls, reason: str) -> "TierOutcome":
        return cls(TierStatus.PARSE_FAILED, reason=reason)


@dataclass(frozen=True)
class MediaSource:
    """A media file on disk handed to the decode tiers."""
    path: Path

    def __post_init__(self):
        object.__setattr__(self, "path", Path(self.path))

    @property
    def size_bytes(self) -> int:
        return self.path.stat().st_size

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


@dataclass(frozen=True)
class MediaDescriptor:
    has_audio: bool
    audio_codec: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    channel_layout: str | None = None
    duration_s: float | None = None
    size_bytes: int | None = None
    container: str | None = None

    def to_dict(self) -> dict:
        return {
            "has_audio": self.has_audio,
            "audio_codec": self.audio_codec,
            "sample_rate": self.sample_rate,
            "channels": self.channels,
            "channel_layout": self.channel_layout,
            "duration_s": self.duration_s,
            "size_bytes": self.size_bytes,
            "container": self.container,
        }

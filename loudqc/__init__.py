"""
LoudQC - Loudness Quality Control

Integrated loudness (ITU-R BS.1770-4) and peak measurement for media files,
with a tiered decode strategy that falls back from native decoding to
ffmpeg-assisted extraction to ffmpeg's own loudnorm measurement.
"""
from loudqc.version import __version__
from loudqc.types import (
    ChannelPosition,
    EnergyBlock,
    GateStage,
    LoudnessResult,
    MediaDescriptor,
    MediaSource,
    SampleBuffer,
    TierOutcome,
    TierStatus,
)
from loudqc.config import LoudnessConfig
from loudqc.orchestrator import LoudnessOrchestrator

__all__ = [
    "__version__",
    "ChannelPosition",
    "EnergyBlock",
    "GateStage",
    "LoudnessResult",
    "MediaDescriptor",
    "MediaSource",
    "SampleBuffer",
    "TierOutcome",
    "TierStatus",
    "LoudnessConfig",
    "LoudnessOrchestrator",
]

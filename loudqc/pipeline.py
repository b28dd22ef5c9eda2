"""In-process measurement pipeline for decoded PCM."""
from __future__ import annotations

import logging

from loudqc.algorithms.registry import LOUDNESS_ALGO_ID, peak_algo_id
from loudqc.config import LoudnessConfig
from loudqc.dsp.kweighting import k_weight
from loudqc.dsp.resample import resample_to
from loudqc.errors import DurationExceededError
from loudqc.metrics.loudness import block_energies, integrated_lufs
from loudqc.metrics.truepeak import sample_peak_dbtp, true_peak_dbtp
from loudqc.types import (
    CHANNEL_WEIGHTS,
    MAX_WEIGHTED_CHANNELS,
    ChannelPosition as P,
    LoudnessResult,
    SampleBuffer,
)

logger = logging.getLogger(__name__)

# Channel order per channel count (WAV/SMPTE order). Six or more channels
# are read as 5.1 and anything past the sixth is ignored for loudness.
_LAYOUTS: dict[int, tuple[P, ...]] = {
    1: (P.CENTER,),
    2: (P.LEFT, P.RIGHT),
    3: (P.LEFT, P.RIGHT, P.CENTER),
    4: (P.LEFT, P.RIGHT, P.LEFT_SURROUND, P.RIGHT_SURROUND),
    5: (P.LEFT, P.RIGHT, P.CENTER, P.LEFT_SURROUND, P.RIGHT_SURROUND),
    6: (P.LEFT, P.RIGHT, P.CENTER, P.LFE, P.LEFT_SURROUND, P.RIGHT_SURROUND),
}


def channel_layout(num_channels: int) -> tuple[P, ...]:
    if num_channels <= 0:
        raise ValueError("num_channels must be positive.")
    return _LAYOUTS[min(num_channels, 6)]


def weighted_channel_plan(num_channels: int) -> list[tuple[int, float]]:
    """Return (channel index, weight) pairs that take part in loudness."""
    plan = [
        (idx, CHANNEL_WEIGHTS[pos])
        for idx, pos in enumerate(channel_layout(num_channels))
        if pos in CHANNEL_WEIGHTS
    ]
    return plan[:MAX_WEIGHTED_CHANNELS]


def check_duration(buffer: SampleBuffer, config: LoudnessConfig) -> None:
    if buffer.duration > config.max_duration_s:
        raise DurationExceededError(buffer.duration, config.max_duration_s)


def measure_buffer(
    buffer: SampleBuffer,
    config: LoudnessConfig | None = None,
    *,
    tier: str | None = None
) -> LoudnessResult:
    """
    Measure integrated loudness and peak of a decoded buffer.

    Raises DurationExceededError before any resampling or block work when
    the buffer is longer than ``config.max_duration_s``.
    """
    cfg = config or LoudnessConfig()
    check_duration(buffer, cfg)

    audio = resample_to(buffer, cfg.target_fs)
    plan = weighted_channel_plan(audio.num_channels)
    weighted = [k_weight(audio.channels[idx]) for idx, _ in plan]
    blocks = block_energies(weighted, audio.fs, [w for _, w in plan])
    lufs = integrated_lufs(blocks)

    # Peak is taken on every original channel, LFE included.
    if cfg.true_peak_mode == "oversampled":
        peak = true_peak_dbtp(buffer.channels, buffer.fs, cfg.true_peak_oversample)
    else:
        peak = sample_peak_dbtp(buffer.channels)

    logger.debug(
        "measured %d ch %.1fs: %d blocks, %.1f LUFS, %.1f dBTP",
        buffer.num_channels, buffer.duration, len(blocks), lufs, peak,
    )
    warnings_list = list(audio.warnings)
    if buffer.num_channels > 6:
        warnings_list.append(
            f"loudness uses the first 6 of {buffer.num_channels} channels as 5.1."
        )
    if not blocks:
        warnings_list.append("audio shorter than one 400 ms block.")
    return LoudnessResult(
        integrated_lufs=lufs,
        true_peak_dbtp=peak,
        tier=tier,
        algorithm_ids=(LOUDNESS_ALGO_ID, peak_algo_id(cfg)),
        warnings=tuple(warnings_list),
    )

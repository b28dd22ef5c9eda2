"""Peak level measurement module."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from loudqc.dsp.resample import oversample as _oversample
from loudqc.types import PEAK_FLOOR_DBTP
from loudqc.utils.quantize import round_tenth

PEAK_EPS = 1e-10


def _peak_to_db(peak: float) -> float:
    if peak < PEAK_EPS:
        return PEAK_FLOOR_DBTP
    return round_tenth(20.0 * float(np.log10(peak)))


def max_abs(channels: Sequence[np.ndarray]) -> float:
    """Largest absolute sample across all channels."""
    peak = 0.0
    for ch in channels:
        x = np.asarray(ch)
        if x.size:
            peak = max(peak, float(np.max(np.abs(x))))
    return peak


def sample_peak_dbtp(channels: Sequence[np.ndarray]) -> float:
    """
    Peak of the original, unweighted samples in dB, rounded to 0.1.

    No oversampling is applied, so inter-sample peaks can be under-reported.
    Returns -99.0 when the signal is effectively silent.
    """
    return _peak_to_db(max_abs(channels))


def true_peak_dbtp(
    channels: Sequence[np.ndarray],
    fs: float,
    oversample: int = 4
) -> float:
    """
    Compute true peak in dBTP after polyphase oversampling.

    Args:
        channels: Unweighted sample arrays (all channels, LFE included)
        fs: Sample rate in Hz
        oversample: Integer oversampling factor (BS.1770-4 uses 4 at 48 kHz)

    Returns:
        True peak in dBTP, rounded to 0.1; -99.0 for silence
    """
    if fs <= 0:
        raise ValueError("Sample rate must be positive.")
    peak = 0.0
    for ch in channels:
        x = np.asarray(ch, dtype=np.float64)
        if x.size == 0:
            continue
        up = _oversample(x, oversample)
        peak = max(peak, float(np.max(np.abs(up))), float(np.max(np.abs(x))))
    return _peak_to_db(peak)

"""Polyphase resampling helpers."""
from __future__ import annotations

from math import gcd

import numpy as np
from scipy.signal import resample_poly

from loudqc.types import SampleBuffer


def _ratio(fs: float, target_fs: float) -> tuple[int, int]:
    if fs <= 0 or target_fs <= 0:
        raise ValueError("Sample rates must be positive.")
    fs_i = int(round(fs))
    target_i = int(round(target_fs))
    if abs(fs - fs_i) > 1e-6 or abs(target_fs - target_i) > 1e-6:
        raise ValueError("Polyphase resampling needs integer sample rates.")
    g = gcd(fs_i, target_i)
    return target_i // g, fs_i // g


def resample_channel(x: np.ndarray, fs: float, target_fs: float) -> np.ndarray:
    """Resample a mono array with a linear-phase FIR (Kaiser window)."""
    x = np.asarray(x, dtype=np.float64)
    if fs == target_fs or x.size == 0:
        return x
    up, down = _ratio(fs, target_fs)
    return resample_poly(x, up, down)


def resample_to(buffer: SampleBuffer, target_fs: float = 48000.0) -> SampleBuffer:
    """Return the buffer at ``target_fs``; unchanged when rates already match."""
    if float(buffer.fs) == float(target_fs):
        return buffer
    chans = tuple(
        resample_channel(ch, buffer.fs, target_fs).astype(np.float32)
        for ch in buffer.channels
    )
    warnings_list = list(buffer.warnings)
    warnings_list.append(
        f"{buffer.backend}: resampled {buffer.fs:g} Hz to {float(target_fs):g} Hz."
    )
    return SampleBuffer(
        channels=chans,
        fs=float(target_fs),
        backend=buffer.backend,
        warnings=tuple(warnings_list),
    )


def oversample(x: np.ndarray, factor: int = 4) -> np.ndarray:
    """Upsample by an integer factor for inter-sample peak estimation."""
    if factor < 1:
        raise ValueError("Oversampling factor must be >= 1.")
    x = np.asarray(x, dtype=np.float64)
    if factor == 1 or x.size == 0:
        return x
    return resample_poly(x, factor, 1)

"""Block energy and two-pass gating for BS.1770-4 integrated loudness."""
from __future__ import annotations

from typing import Sequence

import numpy as np

from loudqc.types import EnergyBlock, GateStage, SILENCE_LUFS
from loudqc.utils.quantize import round_tenth

BLOCK_SECONDS = 0.4
LOUDNESS_OFFSET_DB = -0.691
ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_RATIO = 0.1  # -10 LU
ABSOLUTE_GATE_ENERGY = 10.0 ** ((ABSOLUTE_GATE_LUFS - LOUDNESS_OFFSET_DB) / 10.0)


def block_geometry(fs: float) -> tuple[int, int]:
    """Return (block_size, hop) in samples; hop is a quarter block."""
    block = int(round(BLOCK_SECONDS * fs))
    block -= block % 4
    if block <= 0:
        raise ValueError("Sample rate too low for 400 ms blocks.")
    return block, block // 4


def energy_to_lufs(energy: float) -> float:
    if energy <= 0.0:
        return float("-inf")
    return LOUDNESS_OFFSET_DB + 10.0 * float(np.log10(energy))


def _hop_square_sums(x: np.ndarray, hop: int) -> np.ndarray:
    n_hops = x.shape[0] // hop
    seg = x[: n_hops * hop].reshape(n_hops, hop)
    return np.einsum("ij,ij->i", seg, seg)


def block_energies(
    weighted_channels: Sequence[np.ndarray],
    fs: float,
    weights: Sequence[float]
) -> list[EnergyBlock]:
    """
    Compute channel-weighted mean-square energy for each 400 ms block.

    Blocks overlap by 75%. Each block's energy is the sum over channels of
    ``weight * mean(x**2)``. A signal shorter than one block yields no
    blocks.

    Args:
        weighted_channels: K-weighted sample arrays, equal length
        fs: Sample rate in Hz
        weights: Per-channel weights, same order as ``weighted_channels``

    Returns:
        EnergyBlock list in time order
    """
    if len(weighted_channels) != len(weights):
        raise ValueError("Need one weight per channel.")
    if not weighted_channels:
        return []
    block, hop = block_geometry(fs)
    n = int(np.asarray(weighted_channels[0]).shape[0])
    n_hops = n // hop
    n_blocks = n_hops - 3
    if n_blocks <= 0:
        return []

    total = np.zeros(n_blocks, dtype=np.float64)
    for ch, w in zip(weighted_channels, weights):
        x = np.asarray(ch, dtype=np.float64)
        if x.shape[0] != n:
            raise ValueError("Weighted channels must have equal length.")
        sums = _hop_square_sums(x, hop)
        # Four consecutive hops make one block.
        window = sums[:-3] + sums[1:-2] + sums[2:-1] + sums[3:]
        total += float(w) * (window / block)
    return [EnergyBlock(start=i * hop, energy=float(e)) for i, e in enumerate(total)]


def gate_blocks(blocks: Sequence[EnergyBlock]) -> dict[GateStage, np.ndarray]:
    """Apply the absolute then relative gate; return energies per stage."""
    ungated = np.array([b.energy for b in blocks], dtype=np.float64)
    absolute = ungated[ungated > ABSOLUTE_GATE_ENERGY]
    if absolute.size == 0:
        relative = absolute
    else:
        threshold = RELATIVE_GATE_RATIO * float(np.mean(absolute))
        relative = absolute[absolute >= threshold]
    return {
        GateStage.UNGATED: ungated,
        GateStage.ABSOLUTE: absolute,
        GateStage.RELATIVE: relative,
    }


def gated_loudness(blocks: Sequence[EnergyBlock]) -> float | None:
    """Unrounded integrated loudness, or None when the gates leave nothing."""
    survivors = gate_blocks(blocks)[GateStage.RELATIVE]
    if survivors.size == 0:
        return None
    return energy_to_lufs(float(np.mean(survivors)))


def integrated_lufs(blocks: Sequence[EnergyBlock]) -> float:
    """Integrated loudness in LUFS, rounded to 0.1; -70 for silence."""
    value = gated_loudness(blocks)
    if value is None:
        return SILENCE_LUFS
    return round_tenth(value)

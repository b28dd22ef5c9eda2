"""BS.1770-4 K-weighting (48 kHz)."""
from __future__ import annotations

import numpy as np

from loudqc.dsp.biquad import BiquadFilter

KWEIGHT_FS = 48000.0

# Stage 1: high-shelf (head acoustic model)
SHELF_B = (1.53512485958697, -2.69169618940638, 1.19839281085285)
SHELF_A = (1.0, -1.69065929318241, 0.73248077421585)

# Stage 2: RLB high-pass
HIGHPASS_B = (1.0, -2.0, 1.0)
HIGHPASS_A = (1.0, -1.99004745483398, 0.99007225036510)


class KWeightingFilter:
    """Shelf and high-pass biquads in cascade for a single channel."""

    def __init__(self):
        self.shelf = BiquadFilter(SHELF_B, SHELF_A)
        self.highpass = BiquadFilter(HIGHPASS_B, HIGHPASS_A)

    def reset(self) -> None:
        self.shelf.reset()
        self.highpass.reset()

    def process(self, x: np.ndarray) -> np.ndarray:
        return self.highpass.process(self.shelf.process(x))


def k_weight(x: np.ndarray) -> np.ndarray:
    """K-weight one channel of 48 kHz audio with fresh filter state."""
    return KWeightingFilter().process(np.asarray(x, dtype=np.float64))

"""Second-order IIR section in Direct Form II Transposed."""
from __future__ import annotations

from typing import Sequence

import numpy as np
from scipy.signal import lfilter


class BiquadFilter:
    """
    Stateful biquad with explicit feedback registers.

    ``b`` are the feed-forward and ``a`` the feed-back coefficients. They are
    normalised on construction so that ``a[0] == 1``. The two registers
    ``(z1, z2)`` persist across ``process`` calls, so a long signal can be
    filtered in consecutive blocks with the same output as a single pass.
    """

    __slots__ = ("b", "a", "state")

    def __init__(self, b: Sequence[float], a: Sequence[float]):
        b_arr = np.asarray(b, dtype=np.float64)
        a_arr = np.asarray(a, dtype=np.float64)
        if b_arr.shape != (3,) or a_arr.shape != (3,):
            raise ValueError("Biquad needs exactly three b and three a coefficients.")
        if a_arr[0] == 0.0:
            raise ValueError("a[0] must be non-zero.")
        self.b = b_arr / a_arr[0]
        self.a = a_arr / a_arr[0]
        self.state = np.zeros(2, dtype=np.float64)

    def reset(self) -> None:
        self.state[:] = 0.0

    def step(self, x: float) -> float:
        """Filter one sample."""
        b0, b1, b2 = self.b
        _, a1, a2 = self.a
        z1, z2 = self.state
        y = b0 * x + z1
        self.state[0] = b1 * x - a1 * y + z2
        self.state[1] = b2 * x - a2 * y
        return float(y)

    def process(self, x: np.ndarray) -> np.ndarray:
        """Filter a 1D block, carrying state into the next call."""
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1:
            raise ValueError("BiquadFilter.process expects a 1D array.")
        if x.size == 0:
            return x.copy()
        # lfilter's zi is the DF2T register pair.
        y, zf = lfilter(self.b, self.a, x, zi=self.state)
        self.state[:] = zf
        return y

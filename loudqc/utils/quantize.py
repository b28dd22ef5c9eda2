from __future__ import annotations
import math


def q(x: float, step: float) -> float:
    """Quantize a float to the nearest step, ties away from zero."""
    if x is None or math.isnan(x) or math.isinf(x):
        return x
    inv = 1.0 / step
    y = x * inv
    if y >= 0:
        yq = math.floor(y + 0.5)
    else:
        yq = -math.floor(-y + 0.5)
    return yq / inv


def round_tenth(x: float) -> float:
    """Round a level to one decimal place for reporting."""
    return q(float(x), 0.1)

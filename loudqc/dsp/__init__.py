"""DSP building blocks for LoudQC."""

from loudqc.dsp.biquad import BiquadFilter
from loudqc.dsp.kweighting import KWeightingFilter, k_weight
from loudqc.dsp.resample import oversample, resample_channel, resample_to

__all__ = [
    "BiquadFilter",
    "KWeightingFilter",
    "k_weight",
    "oversample",
    "resample_channel",
    "resample_to",
]

"""Algorithm registry for loudness and peak measurement."""
from __future__ import annotations

from loudqc.config import LoudnessConfig
from loudqc.dsp.kweighting import HIGHPASS_A, HIGHPASS_B, SHELF_A, SHELF_B
from loudqc.metrics.loudness import (
    ABSOLUTE_GATE_LUFS,
    BLOCK_SECONDS,
    LOUDNESS_OFFSET_DB,
    RELATIVE_GATE_RATIO,
)


LOUDNESS_ALGO_ID = "bs1770-4-kweight-gated-lufs-v1"
SAMPLE_PEAK_ALGO_ID = "sample_peak_v1"
TRUE_PEAK_ALGO_ID = "true_peak_polyphase_4x_v1"
ENGINE_LOUDNORM_ALGO_ID = "ffmpeg-loudnorm-summary-v1"


def peak_algo_id(config: LoudnessConfig) -> str:
    if config.true_peak_mode == "oversampled":
        return TRUE_PEAK_ALGO_ID
    return SAMPLE_PEAK_ALGO_ID


def build_algorithm_registry(config: LoudnessConfig) -> dict:
    """Build the algorithm registry with locked parameters."""
    return {
        LOUDNESS_ALGO_ID: {
            "id": LOUDNESS_ALGO_ID,
            "params": {
                "standard": "bs1770-4",
                "fs_hz": float(config.target_fs),
                "kweight_shelf": {"b": list(SHELF_B), "a": list(SHELF_A)},
                "kweight_highpass": {"b": list(HIGHPASS_B), "a": list(HIGHPASS_A)},
                "block_seconds": BLOCK_SECONDS,
                "overlap": 0.75,
                "offset_db": LOUDNESS_OFFSET_DB,
                "absolute_gate_lufs": ABSOLUTE_GATE_LUFS,
                "relative_gate_lu": -10.0,
                "relative_gate_ratio": RELATIVE_GATE_RATIO,
                "channel_weights": {"L": 1.0, "R": 1.0, "C": 1.0, "Ls": 1.41, "Rs": 1.41},
                "max_duration_s": float(config.max_duration_s),
            }
        },
        SAMPLE_PEAK_ALGO_ID: {
            "id": SAMPLE_PEAK_ALGO_ID,
            "params": {
                "oversample": 1,
                "floor_dbtp": -99.0
            }
        },
        TRUE_PEAK_ALGO_ID: {
            "id": TRUE_PEAK_ALGO_ID,
            "params": {
                "method": "resample_poly_kaiser",
                "oversample": int(config.true_peak_oversample),
                "floor_dbtp": -99.0
            }
        },
        ENGINE_LOUDNORM_ALGO_ID: {
            "id": ENGINE_LOUDNORM_ALGO_ID,
            "params": {
                "backend": "ffmpeg",
                "filter": "loudnorm=print_format=json",
                "fields": ["input_i", "input_tp"]
            }
        },
    }


def algorithm_ids_from_registry(registry: dict) -> list[str]:
    """Return sorted algorithm IDs from registry."""
    return sorted(registry.keys())

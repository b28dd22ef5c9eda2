"""Measurement configuration."""
from __future__ import annotations

import json
import shutil
from dataclasses import dataclass, fields, replace

DEFAULT_NATIVE_MAX_BYTES = 200 * 1024 * 1024
DEFAULT_TARGET_FS = 48000.0
DEFAULT_MAX_DURATION_S = 7200.0
DEFAULT_TIER_TIMEOUT_S = 600.0
TRUE_PEAK_MODES = ("sample", "oversampled")


@dataclass(frozen=True)
class LoudnessConfig:
    """
    Knobs for the tiered loudness measurement.

    ``native_max_bytes`` bounds the size of sources handed to the native
    decoder, since the whole decoded buffer is held in memory.
    ``max_duration_s`` bounds in-process measurement; longer buffers are
    left to the media engine. ``tier_timeout_s`` of None disables the
    per-tier timeout.
    """
    native_max_bytes: int = DEFAULT_NATIVE_MAX_BYTES
    target_fs: float = DEFAULT_TARGET_FS
    max_duration_s: float = DEFAULT_MAX_DURATION_S
    tier_timeout_s: float | None = DEFAULT_TIER_TIMEOUT_S
    true_peak_mode: str = "sample"
    true_peak_oversample: int = 4
    ffmpeg_path: str | None = None
    ffprobe_path: str | None = None

    def __post_init__(self):
        if self.native_max_bytes < 0:
            raise ValueError("native_max_bytes must be >= 0.")
        if self.target_fs <= 0:
            raise ValueError("target_fs must be positive.")
        if self.max_duration_s <= 0:
            raise ValueError("max_duration_s must be positive.")
        if self.tier_timeout_s is not None and self.tier_timeout_s <= 0:
            raise ValueError("tier_timeout_s must be positive or null.")
        if self.true_peak_mode not in TRUE_PEAK_MODES:
            raise ValueError(
                f"true_peak_mode must be one of {', '.join(TRUE_PEAK_MODES)}."
            )
        if self.true_peak_oversample < 1:
            raise ValueError("true_peak_oversample must be >= 1.")

    def resolved_ffmpeg(self) -> str | None:
        return self.ffmpeg_path or shutil.which("ffmpeg")

    def resolved_ffprobe(self) -> str | None:
        return self.ffprobe_path or shutil.which("ffprobe")

    def with_overrides(self, **overrides) -> "LoudnessConfig":
        """Return a copy with non-None overrides applied."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **clean)


_FIELD_TYPES = {
    "native_max_bytes": int,
    "target_fs": float,
    "max_duration_s": float,
    "tier_timeout_s": float,
    "true_peak_mode": str,
    "true_peak_oversample": int,
    "ffmpeg_path": str,
    "ffprobe_path": str,
}


def config_from_dict(j: dict) -> LoudnessConfig:
    """
    Build a config from the ``"loudness"`` object of a config document.

    Unknown keys are ignored. ``tier_timeout_s``, ``ffmpeg_path`` and
    ``ffprobe_path`` may be null.
    """
    section = j.get("loudness", {})
    if not isinstance(section, dict):
        raise ValueError("'loudness' must be an object.")
    known = {f.name for f in fields(LoudnessConfig)}
    kwargs = {}
    for key, value in section.items():
        if key not in known:
            continue
        if value is None:
            if key in ("tier_timeout_s", "ffmpeg_path", "ffprobe_path"):
                kwargs[key] = None
                continue
            raise ValueError(f"'{key}' must not be null.")
        caster = _FIELD_TYPES[key]
        expected = str if caster is str else (int, float)
        if isinstance(value, bool) or not isinstance(value, expected):
            raise ValueError(f"'{key}' has the wrong type.")
        if caster is int and not float(value).is_integer():
            raise ValueError(f"'{key}' must be a whole number.")
        kwargs[key] = caster(value)
    return LoudnessConfig(**kwargs)


def load_config(path: str) -> LoudnessConfig:
    """Load a LoudnessConfig from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        j = json.load(f)
    if not isinstance(j, dict):
        raise ValueError("Config root must be a JSON object.")
    return config_from_dict(j)

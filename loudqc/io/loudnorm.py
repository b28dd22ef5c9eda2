"""Parser for the ffmpeg loudnorm JSON summary."""
from __future__ import annotations
import json
import math
import re

from loudqc.errors import SummaryParseError
from loudqc.types import UNMEASURED_DBTP, UNMEASURED_LUFS
from loudqc.utils.quantize import round_tenth

_SUMMARY_RE = re.compile(r"\{[^{}]*?\"input_i\"[^{}]*?\}", re.DOTALL)


def _as_level(value, fallback: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(v):
        return fallback
    return round_tenth(v)


def parse_loudnorm_summary(text: str) -> tuple[float, float]:
    """
    Extract (integrated LUFS, true peak dBTP) from loudnorm diagnostics.

    loudnorm prints its measurement as a JSON object with string values, e.g.
    ``"input_i" : "-23.02"``. A missing or non-finite ``input_i`` reads as
    -99.0 and a missing or non-finite ``input_tp`` as 0.0.

    Raises:
        SummaryParseError: no summary block, or it is not valid JSON
    """
    m = _SUMMARY_RE.search(text or "")
    if not m:
        raise SummaryParseError("loudnorm summary block not found.")
    try:
        data = json.loads(m.group(0))
    except json.JSONDecodeError as exc:
        raise SummaryParseError(f"loudnorm summary is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise SummaryParseError("loudnorm summary is not an object.")
    return (
        _as_level(data.get("input_i"), UNMEASURED_LUFS),
        _as_level(data.get("input_tp"), UNMEASURED_DBTP),
    )

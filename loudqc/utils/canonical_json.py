from __future__ import annotations
import json


def canonical_dumps(obj, *, indent: int | None = None) -> str:
    """Serialize to canonical JSON: sorted keys, no NaN, minimal whitespace."""
    if indent is not None:
        return json.dumps(obj, ensure_ascii=False, sort_keys=True, indent=indent, allow_nan=False)
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"), allow_nan=False)

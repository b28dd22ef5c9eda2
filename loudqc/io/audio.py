"""Native PCM decode service (libsndfile)."""
from __future__ import annotations
import io
import warnings as py_warnings
import numpy as np
import soundfile as sf

from loudqc.errors import DecodeError, UnsupportedFormatError
from loudqc.types import SampleBuffer


def _open_error_is_format(exc: Exception) -> bool:
    msg = str(exc).lower()
    return (
        "format not recognised" in msg
        or "format not recognized" in msg
        or "unknown format" in msg
        or "unsupported" in msg
    )


def decode_bytes(data: bytes, *, backend: str = "soundfile") -> SampleBuffer:
    """
    Decode in-memory audio to a float32 SampleBuffer.

    Supports whatever the installed libsndfile handles (WAV, FLAC, AIFF,
    OGG, and MP3 on recent builds).

    Raises:
        UnsupportedFormatError: libsndfile cannot identify the container/codec
        DecodeError: the data was recognised but could not be decoded
    """
    if not data:
        raise DecodeError("no bytes to decode.")
    with py_warnings.catch_warnings(record=True) as w:
        py_warnings.simplefilter("always")
        try:
            frames, fs = sf.read(io.BytesIO(data), always_2d=True, dtype="float32")
        except sf.LibsndfileError as exc:
            if _open_error_is_format(exc):
                raise UnsupportedFormatError(str(exc)) from exc
            raise DecodeError(str(exc)) from exc
        except (RuntimeError, TypeError, ValueError) as exc:
            raise DecodeError(str(exc)) from exc
    warn_list = [f"{backend}: {wi.message}" for wi in w]
    if frames.shape[0] == 0:
        raise DecodeError("decoded zero audio frames.")
    if not np.all(np.isfinite(frames)):
        warn_list.append(f"{backend}: replaced non-finite samples with 0.")
        frames = np.nan_to_num(frames, nan=0.0, posinf=0.0, neginf=0.0)
    return SampleBuffer.from_frames(frames, float(fs), backend=backend, warnings=tuple(warn_list))

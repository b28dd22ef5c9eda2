from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from loudqc.errors import EngineError  # noqa: E402


LOUDNORM_STDERR = """\
Input #0, wav, from 'tone.wav':
  Duration: 00:00:05.00, bitrate: 1536 kb/s
  Stream #0:0: Audio: pcm_s16le ([1][0][0][0] / 0x0001), 48000 Hz, 2 channels, s16, 1536 kb/s
[Parsed_loudnorm_0 @ 0x55d5c5a0c2c0]
{
	"input_i" : "-23.04",
	"input_tp" : "-20.01",
	"input_lra" : "0.00",
	"input_thresh" : "-33.04",
	"output_i" : "-24.47",
	"output_tp" : "-21.44",
	"output_lra" : "0.00",
	"output_thresh" : "-34.47",
	"normalization_type" : "dynamic",
	"target_offset" : "0.47"
}
"""


def sine(freq: float, amp: float, seconds: float, fs: float = 48000.0) -> np.ndarray:
    t = np.arange(int(round(seconds * fs)), dtype=np.float64) / fs
    return (amp * np.sin(2.0 * np.pi * freq * t)).astype(np.float32)


class FakeEngine:
    """Media engine double recording the calls made to it."""

    def __init__(self, wav: bytes | None = None, loudnorm_text: str | None = LOUDNORM_STDERR):
        self.wav = wav
        self.loudnorm_text = loudnorm_text
        self.calls: list[str] = []

    async def extract_audio_wav(self, source) -> bytes:
        self.calls.append("extract_audio_wav")
        if self.wav is None:
            raise EngineError("extraction failed")
        return self.wav

    async def run_loudness_filter(self, source) -> str:
        self.calls.append("run_loudness_filter")
        if self.loudnorm_text is None:
            raise EngineError("ffmpeg not found.")
        return self.loudnorm_text

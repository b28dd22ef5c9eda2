"""ffmpeg media engine: audio extraction, loudnorm and ffprobe."""
from __future__ import annotations
import asyncio
import json
import logging
import tempfile
from pathlib import Path

from loudqc.errors import EngineError
from loudqc.types import MediaDescriptor, MediaSource

logger = logging.getLogger(__name__)

WAV_SAMPLE_RATE = 48000


async def _run(cmd: list[str]) -> tuple[int, bytes, bytes]:
    """Run a child process; kill it if the awaiting task is cancelled."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise EngineError(f"could not start {cmd[0]}: {exc}") from exc
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    return proc.returncode, stdout, stderr


class FFmpegEngine:
    """
    Media engine backed by the ffmpeg/ffprobe binaries.

    One instance is shared by every caller that needs ffmpeg. Invocations
    are serialised through an instance lock so the engine never runs
    concurrently with itself.
    """

    def __init__(self, ffmpeg_path: str | None, ffprobe_path: str | None = None):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(cls, config) -> "FFmpegEngine":
        return cls(config.resolved_ffmpeg(), config.resolved_ffprobe())

    def _require_ffmpeg(self) -> str:
        if not self.ffmpeg_path:
            raise EngineError("ffmpeg not found.")
        return self.ffmpeg_path

    async def extract_audio_wav(self, source: MediaSource) -> bytes:
        """
        Demux/transcode the first audio stream to 16-bit 48 kHz WAV.

        Video is never decoded. Channel count is preserved.
        """
        ffmpeg = self._require_ffmpeg()
        with tempfile.TemporaryDirectory(prefix="loudqc-") as tmp:
            out_path = Path(tmp) / "audio.wav"
            cmd = [
                ffmpeg,
                "-hide_banner",
                "-nostdin",
                "-v", "error",
                "-i", str(source.path),
                "-map", "0:a:0",
                "-vn", "-sn", "-dn",
                "-c:a", "pcm_s16le",
                "-ar", str(WAV_SAMPLE_RATE),
                "-f", "wav",
                "-y",
                str(out_path),
            ]
            async with self._lock:
                logger.debug("ffmpeg extract: %s", source.path)
                code, _, stderr = await _run(cmd)
            if code != 0:
                msg = stderr.decode("utf-8", errors="replace").strip()
                raise EngineError(f"ffmpeg audio extraction failed: {msg}")
            if not out_path.exists() or out_path.stat().st_size == 0:
                raise EngineError("ffmpeg produced no audio output.")
            return out_path.read_bytes()

    async def run_loudness_filter(self, source: MediaSource) -> str:
        """
        Run loudnorm over the whole file and return its diagnostic text.

        The text is returned whatever the exit status, since the summary is
        printed to stderr before ffmpeg exits.
        """
        ffmpeg = self._require_ffmpeg()
        cmd = [
            ffmpeg,
            "-hide_banner",
            "-nostdin",
            "-i", str(source.path),
            "-vn",
            "-af", "loudnorm=print_format=json",
            "-f", "null",
            "-",
        ]
        async with self._lock:
            logger.debug("ffmpeg loudnorm: %s", source.path)
            code, _, stderr = await _run(cmd)
        if code != 0:
            logger.debug("ffmpeg loudnorm exited with %d", code)
        return stderr.decode("utf-8", errors="replace")

    async def probe(self, source: MediaSource) -> MediaDescriptor:
        """Describe container and first audio stream via ffprobe."""
        if not self.ffprobe_path:
            raise EngineError("ffprobe not found.")
        cmd = [
            self.ffprobe_path,
            "-v", "error",
            "-show_entries",
            "format=format_name,duration,size:stream=codec_type,codec_name,sample_rate,channels,channel_layout",
            "-of", "json",
            str(source.path),
        ]
        async with self._lock:
            code, stdout, stderr = await _run(cmd)
        if code != 0:
            msg = stderr.decode("utf-8", errors="replace").strip()
            raise EngineError(f"ffprobe failed: {msg}")
        try:
            info = json.loads(stdout.decode("utf-8", errors="replace"))
        except json.JSONDecodeError as exc:
            raise EngineError(f"ffprobe returned invalid JSON: {exc}") from exc
        return descriptor_from_ffprobe(info)


def _opt_int(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _opt_float(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def descriptor_from_ffprobe(info: dict) -> MediaDescriptor:
    """Build a MediaDescriptor from ffprobe's JSON output."""
    fmt = info.get("format", {}) or {}
    streams = info.get("streams", []) or []
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if audio is None:
        return MediaDescriptor(
            has_audio=False,
            duration_s=_opt_float(fmt.get("duration")),
            size_bytes=_opt_int(fmt.get("size")),
            container=fmt.get("format_name"),
        )
    return MediaDescriptor(
        has_audio=True,
        audio_codec=audio.get("codec_name"),
        sample_rate=_opt_int(audio.get("sample_rate")),
        channels=_opt_int(audio.get("channels")),
        channel_layout=audio.get("channel_layout"),
        duration_s=_opt_float(fmt.get("duration")),
        size_bytes=_opt_int(fmt.get("size")),
        container=fmt.get("format_name"),
    )

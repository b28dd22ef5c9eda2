from __future__ import annotations

import asyncio
import io

import numpy as np
import soundfile as sf

import loudqc.pipeline as pipeline
from loudqc.config import LoudnessConfig
from loudqc.errors import DecodeError, UnsupportedFormatError
from loudqc.io.audio import decode_bytes
from loudqc.orchestrator import LoudnessOrchestrator
from loudqc.tiers import (
    TierContext,
    engine_extract_tier,
    engine_loudness_tier,
    native_decode_tier,
)
from loudqc.types import MediaDescriptor, MediaSource, SampleBuffer, TierOutcome, TierStatus
from tests.conftest import FakeEngine, sine


def _wav(seconds: float = 2.0, amp: float = 0.5, fs: int = 48000) -> bytes:
    bio = io.BytesIO()
    sf.write(bio, sine(1000.0, amp, seconds, fs), fs, format="WAV", subtype="FLOAT")
    return bio.getvalue()


def _source(tmp_path, data: bytes = b"not audio") -> MediaSource:
    path = tmp_path / "clip.mov"
    path.write_bytes(data)
    return MediaSource(path)


def _always_throws(data: bytes) -> SampleBuffer:
    raise RuntimeError("decoder exploded")


def test_tier1_native_decode_wins(tmp_path):
    engine = FakeEngine()
    orch = LoudnessOrchestrator(engine)
    result = asyncio.run(orch.measure(_source(tmp_path, _wav())))
    assert result.tier == "native_decode"
    assert np.isclose(result.integrated_lufs, -9.0, atol=0.1)
    assert result.measured
    assert engine.calls == []


def test_throwing_decoder_reaches_tier2(tmp_path):
    seen = []

    def decoder(data: bytes) -> SampleBuffer:
        seen.append(data[:4])
        if len(seen) == 1:
            raise RuntimeError("native decode unavailable")
        return decode_bytes(data)

    engine = FakeEngine(wav=_wav())
    orch = LoudnessOrchestrator(engine, decoder=decoder)
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert result.tier == "engine_extract"
    assert engine.calls == ["extract_audio_wav"]
    assert len(seen) == 2
    assert result.warnings[0].startswith("native_decode: extraction_failed")


def test_tier1_and_tier2_fail_reaches_tier3(tmp_path):
    engine = FakeEngine(wav=None)
    orch = LoudnessOrchestrator(engine, decoder=_always_throws)
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert engine.calls == ["extract_audio_wav", "run_loudness_filter"]
    assert result.tier == "engine_loudness"
    assert (result.integrated_lufs, result.true_peak_dbtp) == (-23.0, -20.0)


def test_all_tiers_fail_returns_sentinel(tmp_path):
    engine = FakeEngine(wav=None, loudnorm_text="garbage with no summary")
    orch = LoudnessOrchestrator(engine, decoder=_always_throws)
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert (result.integrated_lufs, result.true_peak_dbtp) == (-99.0, 0.0)
    assert not result.measured
    assert result.tier is None
    assert len(result.warnings) == 3


def test_engine_missing_in_every_tier_returns_sentinel(tmp_path):
    engine = FakeEngine(wav=None, loudnorm_text=None)
    orch = LoudnessOrchestrator(engine, decoder=_always_throws)
    result = orch.measure_sync(_source(tmp_path))
    assert not result.measured


def test_missing_source_file_never_raises(tmp_path):
    engine = FakeEngine(wav=None, loudnorm_text=None)
    orch = LoudnessOrchestrator(engine)
    result = asyncio.run(orch.measure(MediaSource(tmp_path / "gone.mp4")))
    assert not result.measured


def test_no_audio_stream_skips_tiers(tmp_path):
    engine = FakeEngine()
    orch = LoudnessOrchestrator(engine)
    result = asyncio.run(orch.measure(_source(tmp_path), MediaDescriptor(has_audio=False)))
    assert not result.measured
    assert engine.calls == []


def test_size_threshold_skips_native_decode(tmp_path):
    calls = []

    def decoder(data: bytes) -> SampleBuffer:
        calls.append(len(data))
        return decode_bytes(data)

    engine = FakeEngine(wav=_wav())
    cfg = LoudnessConfig(native_max_bytes=1024)
    orch = LoudnessOrchestrator(engine, decoder=decoder, config=cfg)
    source = _source(tmp_path, _wav())
    result = asyncio.run(orch.measure(source))
    assert result.tier == "engine_extract"
    assert result.warnings[0].startswith("native_decode: unsupported")
    # only the extracted WAV was decoded
    assert len(calls) == 1


def test_duration_guard_falls_through_to_tier3(tmp_path, monkeypatch):
    counted = {"blocks": 0}

    def counting_blocks(*args, **kwargs):
        counted["blocks"] += 1
        return []

    monkeypatch.setattr(pipeline, "block_energies", counting_blocks)

    def long_decoder(data: bytes) -> SampleBuffer:
        return SampleBuffer(channels=(np.zeros(72010, dtype=np.float32),), fs=10)

    engine = FakeEngine(wav=b"RIFF....WAVE")
    orch = LoudnessOrchestrator(engine, decoder=long_decoder)
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert result.tier == "engine_loudness"
    assert counted["blocks"] == 0
    # engine extraction is never attempted once the source is known to be too long
    assert engine.calls == ["run_loudness_filter"]
    assert result.warnings[0].startswith("native_decode: duration_exceeded")
    assert result.warnings[1] == "engine_extract: skipped (duration exceeded)"


def test_duration_guard_with_failing_summary_returns_sentinel(tmp_path):
    def long_decoder(data: bytes) -> SampleBuffer:
        return SampleBuffer(channels=(np.zeros(72010, dtype=np.float32),), fs=10)

    engine = FakeEngine(wav=b"RIFF....WAVE", loudnorm_text=None)
    orch = LoudnessOrchestrator(engine, decoder=long_decoder)
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert not result.measured
    assert engine.calls == ["run_loudness_filter"]
    assert isinstance(result.warnings, tuple)
    assert len(result.warnings) == 3


def test_slow_tier_times_out_and_advances(tmp_path):
    async def slow_tier(source, ctx):
        await asyncio.sleep(5)
        return TierOutcome.unsupported()

    cfg = LoudnessConfig(tier_timeout_s=0.05)
    orch = LoudnessOrchestrator(
        FakeEngine(),
        config=cfg,
        tiers=[("slow", slow_tier), ("engine_loudness", engine_loudness_tier)],
    )
    result = asyncio.run(orch.measure(_source(tmp_path)))
    assert result.tier == "engine_loudness"
    assert "timed out" in result.warnings[0]


def test_tiers_run_strictly_in_order(tmp_path):
    order = []

    def make(name, outcome):
        async def tier(source, ctx):
            order.append(name)
            return outcome
        return tier

    orch = LoudnessOrchestrator(
        FakeEngine(),
        tiers=[
            ("a", make("a", TierOutcome.unsupported())),
            ("b", make("b", TierOutcome.extraction_failed("boom"))),
            ("c", make("c", TierOutcome.parse_failed("no block"))),
            ("d", make("d", TierOutcome.unsupported())),
        ],
    )
    result = asyncio.run(orch.measure(_source(tmp_path)))
    # a parse failure is terminal
    assert order == ["a", "b", "c"]
    assert not result.measured


def test_individual_tiers(tmp_path):
    source = _source(tmp_path, _wav(seconds=1.0))
    ctx = TierContext(engine=FakeEngine(wav=None), decoder=decode_bytes)
    ok = asyncio.run(native_decode_tier(source, ctx))
    assert ok.status == TierStatus.SUCCESS
    assert ok.buffer.fs == 48000.0

    failed = asyncio.run(engine_extract_tier(source, ctx))
    assert failed.status == TierStatus.EXTRACTION_FAILED

    def unsupported(data):
        raise UnsupportedFormatError("Format not recognised.")

    def broken(data):
        raise DecodeError("truncated")

    assert asyncio.run(
        native_decode_tier(source, TierContext(engine=ctx.engine, decoder=unsupported))
    ).status == TierStatus.UNSUPPORTED
    assert asyncio.run(
        native_decode_tier(source, TierContext(engine=ctx.engine, decoder=broken))
    ).status == TierStatus.EXTRACTION_FAILED

    parse = asyncio.run(
        engine_loudness_tier(source, TierContext(engine=FakeEngine(loudnorm_text=""), decoder=decode_bytes))
    )
    assert parse.status == TierStatus.PARSE_FAILED

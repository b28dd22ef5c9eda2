"""PCM supplier tiers, tried in order by the orchestrator.

Each tier is an async function ``(source, ctx) -> TierOutcome``. Tiers never
raise for expected failures; they describe them in the outcome instead.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol

from loudqc.algorithms.registry import ENGINE_LOUDNORM_ALGO_ID
from loudqc.config import LoudnessConfig
from loudqc.errors import (
    DecodeError,
    EngineError,
    SummaryParseError,
    UnsupportedFormatError,
)
from loudqc.io.loudnorm import parse_loudnorm_summary
from loudqc.types import LoudnessResult, MediaSource, SampleBuffer, TierOutcome


class MediaEngine(Protocol):
    async def extract_audio_wav(self, source: MediaSource) -> bytes: ...

    async def run_loudness_filter(self, source: MediaSource) -> str: ...


Decoder = Callable[[bytes], SampleBuffer]


@dataclass
class TierContext:
    """Collaborators and settings shared by the tiers of one measurement."""
    engine: MediaEngine
    decoder: Decoder
    config: LoudnessConfig = field(default_factory=LoudnessConfig)


async def native_decode_tier(source: MediaSource, ctx: TierContext) -> TierOutcome:
    """Tier 1: decode the source bytes directly."""
    try:
        size = source.size_bytes
    except OSError as exc:
        return TierOutcome.extraction_failed(f"cannot stat source: {exc}")
    if size >= ctx.config.native_max_bytes:
        return TierOutcome.unsupported(
            f"source is {size} bytes, native decode limit is {ctx.config.native_max_bytes}"
        )
    try:
        data = await asyncio.to_thread(source.read_bytes)
    except OSError as exc:
        return TierOutcome.extraction_failed(f"cannot read source: {exc}")
    try:
        buffer = await asyncio.to_thread(ctx.decoder, data)
    except UnsupportedFormatError as exc:
        return TierOutcome.unsupported(str(exc))
    except DecodeError as exc:
        return TierOutcome.extraction_failed(str(exc))
    return TierOutcome.success(buffer)


async def engine_extract_tier(source: MediaSource, ctx: TierContext) -> TierOutcome:
    """Tier 2: let the engine extract 48 kHz PCM WAV, then decode that."""
    try:
        wav = await ctx.engine.extract_audio_wav(source)
    except EngineError as exc:
        return TierOutcome.extraction_failed(str(exc))
    try:
        buffer = await asyncio.to_thread(ctx.decoder, wav)
    except (UnsupportedFormatError, DecodeError) as exc:
        return TierOutcome.extraction_failed(f"decode of extracted WAV failed: {exc}")
    return TierOutcome.success(buffer)


async def engine_loudness_tier(source: MediaSource, ctx: TierContext) -> TierOutcome:
    """Tier 3: trust the engine's own loudnorm measurement."""
    try:
        text = await ctx.engine.run_loudness_filter(source)
    except EngineError as exc:
        return TierOutcome.extraction_failed(str(exc))
    try:
        lufs, tp = parse_loudnorm_summary(text)
    except SummaryParseError as exc:
        return TierOutcome.parse_failed(str(exc))
    return TierOutcome.success(
        LoudnessResult(
            integrated_lufs=lufs,
            true_peak_dbtp=tp,
            algorithm_ids=(ENGINE_LOUDNORM_ALGO_ID,),
        )
    )


Tier = Callable[[MediaSource, TierContext], Awaitable[TierOutcome]]

DEFAULT_TIERS: tuple[tuple[str, Tier], ...] = (
    ("native_decode", native_decode_tier),
    ("engine_extract", engine_extract_tier),
    ("engine_loudness", engine_loudness_tier),
)

# Tiers that hand back decoded PCM; pointless to retry once the duration guard trips.
PCM_TIERS: frozenset[Tier] = frozenset({native_decode_tier, engine_extract_tier})

"""Loudness orchestrator: fold over PCM tiers until one measures."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from loudqc.config import LoudnessConfig
from loudqc.errors import DurationExceededError
from loudqc.io.audio import decode_bytes
from loudqc.pipeline import measure_buffer
from loudqc.tiers import (
    DEFAULT_TIERS,
    PCM_TIERS,
    Decoder,
    MediaEngine,
    Tier,
    TierContext,
)
from loudqc.types import (
    LoudnessResult,
    MediaDescriptor,
    MediaSource,
    TierOutcome,
    TierStatus,
    unmeasured,
)

logger = logging.getLogger(__name__)


class LoudnessOrchestrator:
    """
    Measure a media file's integrated loudness and peak.

    Tiers are tried strictly in order and one at a time; the first tier that
    yields a result wins. A tier that yields decoded PCM is measured
    in-process, and a measurement failure counts as that tier failing. Once
    the duration guard trips, the remaining PCM tiers are skipped and only
    the engine-summary tier is tried. ``measure`` never raises: when every tier
    fails it returns the ``(-99, 0)`` sentinel, which callers must show as
    "not measured".
    """

    def __init__(
        self,
        engine: MediaEngine,
        *,
        decoder: Decoder = decode_bytes,
        config: LoudnessConfig | None = None,
        tiers: Sequence[tuple[str, Tier]] = DEFAULT_TIERS,
    ):
        self.engine = engine
        self.decoder = decoder
        self.config = config or LoudnessConfig()
        self.tiers = tuple(tiers)

    async def _attempt(self, name: str, tier: Tier, source: MediaSource, ctx: TierContext) -> TierOutcome:
        timeout = self.config.tier_timeout_s
        try:
            if timeout is None:
                return await tier(source, ctx)
            return await asyncio.wait_for(tier(source, ctx), timeout)
        except asyncio.TimeoutError:
            return TierOutcome.extraction_failed(f"timed out after {timeout:g}s")
        except Exception as exc:
            logger.exception("tier %s raised", name)
            return TierOutcome.extraction_failed(f"{type(exc).__name__}: {exc}")

    async def _measure_pcm(self, outcome: TierOutcome, name: str) -> TierOutcome:
        try:
            result = await asyncio.to_thread(
                measure_buffer, outcome.buffer, self.config, tier=name
            )
        except DurationExceededError as exc:
            return TierOutcome.duration_exceeded(str(exc))
        except Exception as exc:
            logger.exception("measurement after tier %s failed", name)
            return TierOutcome.extraction_failed(f"measurement failed: {exc}")
        return TierOutcome.success(result)

    async def measure(
        self,
        source: MediaSource,
        media: MediaDescriptor | None = None
    ) -> LoudnessResult:
        if media is not None and not media.has_audio:
            return unmeasured(["no audio stream."])

        ctx = TierContext(engine=self.engine, decoder=self.decoder, config=self.config)
        notes: list[str] = []
        too_long = False
        for name, tier in self.tiers:
            if too_long and tier in PCM_TIERS:
                notes.append(f"{name}: skipped (duration exceeded)")
                continue
            outcome = await self._attempt(name, tier, source, ctx)
            if outcome.ok and outcome.buffer is not None:
                outcome = await self._measure_pcm(outcome, name)
            if outcome.ok and outcome.result is not None:
                result = outcome.result
                logger.info(
                    "%s: %.1f LUFS, %.1f dBTP via %s",
                    source.path.name, result.integrated_lufs, result.true_peak_dbtp, name,
                )
                return LoudnessResult(
                    integrated_lufs=result.integrated_lufs,
                    true_peak_dbtp=result.true_peak_dbtp,
                    tier=name,
                    algorithm_ids=result.algorithm_ids,
                    warnings=tuple(notes) + result.warnings,
                )
            note = f"{name}: {outcome.status.value}"
            if outcome.reason:
                note += f" ({outcome.reason})"
            logger.info("%s: %s", source.path.name, note)
            notes.append(note)
            if outcome.status == TierStatus.PARSE_FAILED:
                break
            if outcome.status == TierStatus.DURATION_EXCEEDED:
                too_long = True

        logger.warning("%s: loudness not measured", source.path.name)
        return unmeasured(notes)

    def measure_sync(
        self,
        source: MediaSource,
        media: MediaDescriptor | None = None
    ) -> LoudnessResult:
        """Blocking wrapper around ``measure`` for non-async callers."""
        return asyncio.run(self.measure(source, media))

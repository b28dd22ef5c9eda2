"""LoudQC CLI - loudness measurement for media files."""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from loudqc.version import __version__
from loudqc.config import LoudnessConfig, TRUE_PEAK_MODES, load_config
from loudqc.errors import EngineError
from loudqc.io.engine import FFmpegEngine
from loudqc.orchestrator import LoudnessOrchestrator
from loudqc.types import MediaDescriptor, MediaSource
from loudqc.algorithms.registry import build_algorithm_registry
from loudqc.utils.canonical_json import canonical_dumps


EXIT_MEASURED = 0
EXIT_UNMEASURED = 10
EXIT_BAD_ARGS = 2
EXIT_DECODE_ERROR = 3
EXIT_CONFIG_ERROR = 4
EXIT_INTERNAL_ERROR = 5


def _load_cli_config(args) -> LoudnessConfig:
    cfg = load_config(args.config) if getattr(args, "config", None) else LoudnessConfig()
    return cfg.with_overrides(
        tier_timeout_s=getattr(args, "timeout", None),
        true_peak_mode=getattr(args, "true_peak", None),
        ffmpeg_path=getattr(args, "ffmpeg", None),
        ffprobe_path=getattr(args, "ffprobe", None),
    )


async def _probe_or_none(engine: FFmpegEngine, source: MediaSource) -> MediaDescriptor | None:
    """Probe when ffprobe is available; measurement proceeds without it."""
    if not engine.ffprobe_path:
        return None
    try:
        return await engine.probe(source)
    except EngineError as e:
        logging.getLogger(__name__).warning("probe failed: %s", e)
        return None


async def _measure(source: MediaSource, config: LoudnessConfig) -> dict:
    engine = FFmpegEngine.from_config(config)
    media = await _probe_or_none(engine, source)
    orchestrator = LoudnessOrchestrator(engine, config=config)
    result = await orchestrator.measure(source, media)
    registry = build_algorithm_registry(config)
    return {
        "engine": {"name": "loudqc", "version": __version__},
        "input": {
            "path": str(source.path),
            "size_bytes": source.size_bytes,
            "media": media.to_dict() if media is not None else None,
        },
        "loudness": result.to_dict(),
        "algorithms": {aid: registry[aid] for aid in result.algorithm_ids if aid in registry},
    }


def cmd_measure(args) -> int:
    """Handle measure command."""
    try:
        config = _load_cli_config(args)
    except FileNotFoundError as e:
        print(f"Error: Config not found - {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except json.JSONDecodeError as e:
        print(f"Error: Invalid config JSON - {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        print(f"Error: Invalid config - {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    path = Path(args.media_path)
    if not path.is_file():
        print(f"Error: File not found - {path}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    try:
        report = asyncio.run(_measure(MediaSource(path), config))
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        return EXIT_INTERNAL_ERROR

    output_json = canonical_dumps(report, indent=2 if args.pretty else None)
    if args.out:
        Path(args.out).write_text(output_json + "\n", encoding="utf-8")
        print(f"Report written to: {args.out}", file=sys.stderr)
    else:
        print(output_json)
    return EXIT_MEASURED if report["loudness"]["measured"] else EXIT_UNMEASURED


def cmd_probe(args) -> int:
    """Handle probe command."""
    path = Path(args.media_path)
    if not path.is_file():
        print(f"Error: File not found - {path}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    engine = FFmpegEngine(None, args.ffprobe or LoudnessConfig().resolved_ffprobe())
    try:
        media = asyncio.run(engine.probe(MediaSource(path)))
    except EngineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR
    print(canonical_dumps(media.to_dict()))
    return EXIT_MEASURED


def main():
    parser = argparse.ArgumentParser(
        prog="loudqc",
        description="LoudQC - BS.1770-4 loudness measurement"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Log tier decisions to stderr (-vv for debug)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    measure_parser = subparsers.add_parser(
        "measure",
        help="Measure integrated loudness and peak"
    )
    measure_parser.add_argument(
        "media_path",
        help="Path to media file (any container ffmpeg can read)"
    )
    measure_parser.add_argument(
        "--config", "-c",
        help="Path to config JSON with a 'loudness' object"
    )
    measure_parser.add_argument(
        "--out", "-o",
        help="Output report path (default: stdout)"
    )
    measure_parser.add_argument(
        "--timeout",
        type=float,
        help="Per-tier timeout in seconds"
    )
    measure_parser.add_argument(
        "--true-peak",
        choices=list(TRUE_PEAK_MODES),
        help="Peak mode (default: sample)"
    )
    measure_parser.add_argument(
        "--ffmpeg",
        help="Path to ffmpeg binary (default: from PATH)"
    )
    measure_parser.add_argument(
        "--ffprobe",
        help="Path to ffprobe binary (default: from PATH)"
    )
    measure_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent JSON output"
    )
    measure_parser.set_defaults(func=cmd_measure)

    probe_parser = subparsers.add_parser(
        "probe",
        help="Describe the media file's audio stream"
    )
    probe_parser.add_argument(
        "media_path",
        help="Path to media file"
    )
    probe_parser.add_argument(
        "--ffprobe",
        help="Path to ffprobe binary (default: from PATH)"
    )
    probe_parser.set_defaults(func=cmd_probe)

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    if hasattr(args, "func"):
        sys.exit(args.func(args))
    else:
        parser.print_help()
        sys.exit(EXIT_BAD_ARGS)


if __name__ == "__main__":
    main()

from __future__ import annotations

import json
import shutil
import sys
from argparse import Namespace

import numpy as np
import pytest
import soundfile as sf

from loudqc.cli import main as cli
from tests.conftest import sine


def _args(path, **kwargs) -> Namespace:
    base = dict(
        media_path=str(path),
        config=None,
        out=None,
        timeout=None,
        true_peak=None,
        ffmpeg=None,
        ffprobe=None,
        pretty=False,
    )
    base.update(kwargs)
    return Namespace(**base)


def test_measure_missing_file(tmp_path, capsys):
    code = cli.cmd_measure(_args(tmp_path / "missing.mp4"))
    assert code == cli.EXIT_DECODE_ERROR
    assert "File not found" in capsys.readouterr().err


def test_measure_bad_config(tmp_path, capsys):
    cfg = tmp_path / "cfg.json"
    cfg.write_text("{not json", encoding="utf-8")
    code = cli.cmd_measure(_args(tmp_path / "x.wav", config=str(cfg)))
    assert code == cli.EXIT_CONFIG_ERROR


def test_measure_wav_writes_report(tmp_path, monkeypatch):
    # Keep the run independent of any ffmpeg on PATH.
    monkeypatch.setattr(shutil, "which", lambda name: None)
    path = tmp_path / "tone.wav"
    x = sine(1000.0, 0.5, 2.0)
    sf.write(path, np.stack([x, x], axis=1), 48000)
    out = tmp_path / "report.json"
    code = cli.cmd_measure(_args(path, out=str(out)))
    assert code == cli.EXIT_MEASURED
    report = json.loads(out.read_text(encoding="utf-8"))
    assert report["loudness"]["tier"] == "native_decode"
    assert np.isclose(report["loudness"]["integrated_lufs"], -6.0, atol=0.1)
    assert report["input"]["media"] is None
    assert "bs1770-4-kweight-gated-lufs-v1" in report["algorithms"]


def test_measure_unreadable_without_ffmpeg_is_unmeasured(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(shutil, "which", lambda name: None)
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00" * 256)
    code = cli.cmd_measure(_args(path))
    assert code == cli.EXIT_UNMEASURED
    report = json.loads(capsys.readouterr().out)
    assert report["loudness"]["measured"] is False


def test_main_without_command_exits_bad_args(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["loudqc"])
    with pytest.raises(SystemExit) as exc:
        cli.main()
    assert exc.value.code == cli.EXIT_BAD_ARGS

"""Tests for the spu2srt command line.

External tools and OCR are patched out; palette extraction and masking run
for real on tiny generated subpictures.
"""

from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image
from typer.testing import CliRunner

from spu2srt.checkpoint import load_checkpoint
from spu2srt.cli import app

runner = CliRunner()

COLORS = [(0, 0, 0, 0), (255, 255, 255, 255), (20, 20, 20, 255), (128, 128, 128, 255)]

_INDEX = """\
<subpictures>
 <stream>
  <spu start="00:00:01.23" end="00:00:03.45" image="sub0001.png"/>
  <spu start="00:00:05.00" end="00:00:07.5" image="sub0002.png" force="yes"/>
  <spu start="00:00:09.00" end="00:00:10.00" image="sub0003.png"/>
 </stream>
</subpictures>
"""


def _write_subtitles(directory: Path, missing: tuple[str, ...] = ("sub0003.png",)) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    rows = [[COLORS[0], COLORS[1]], [COLORS[2], COLORS[3]]]
    for name in ("sub0001.png", "sub0002.png", "sub0003.png"):
        if name not in missing:
            Image.fromarray(np.array(rows, dtype=np.uint8), "RGBA").save(directory / name)
    index = directory / "sub.xml"
    index.write_text(_INDEX, encoding="utf-8")
    return index


def test_no_input_at_all():
    result = runner.invoke(app, [])
    assert result.exit_code == 1
    assert "Nothing to convert" in result.output
    assert "Usage:" in result.output
    assert "[SOURCE]" in result.output


def test_missing_index_file(tmp_path):
    result = runner.invoke(app, ["--index", str(tmp_path / "absent.xml"), "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_missing_source(tmp_path):
    result = runner.invoke(app, [str(tmp_path / "no_such.iso"), "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "Source not found" in result.output


def test_invalid_mask_pattern(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    result = runner.invoke(app, ["-x", str(index), "--mask", "0011", "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "exactly one 1 bit" in result.output


def test_invalid_language(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    result = runner.invoke(app, ["-x", str(index), "--mask", "0010", "--lang", "EN", "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "Input Error" in result.output


def test_mask_length_mismatch(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    result = runner.invoke(app, ["-x", str(index), "--mask", "00100", "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "Pipeline Error" in result.output


def test_no_mask_writes_calibration_images(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    work = tmp_path / "w"
    result = runner.invoke(app, ["-x", str(index), "-w", str(work)])
    assert result.exit_code == 1
    assert "No mask pattern chosen" in result.output
    names = sorted(p.name for p in (work / "calibration").glob("*.png"))
    assert names == ["0001.png", "0010.png", "0100.png", "1000.png"]


def test_no_usable_image(tmp_path):
    index = _write_subtitles(tmp_path / "subs", missing=("sub0001.png", "sub0002.png", "sub0003.png"))
    result = runner.invoke(app, ["-x", str(index), "--mask", "0010", "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "No usable subtitle image" in result.output


def test_full_run_prints_srt(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    with patch("spu2srt.assembler.recognize", side_effect=["Hello", "<i>World</i>"]):
        result = runner.invoke(app, ["-x", str(index), "--mask", "0010", "-w", str(tmp_path / "w")])
    assert result.exit_code == 0, result.output
    assert "1\n00:00:01,230 --> 00:00:03,450\nHello\n\n2\n00:00:05,000 --> 00:00:07,500\n<i>World</i>\n" in result.stdout
    assert "SRT Ready" in result.output


def test_forced_only(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    with patch("spu2srt.assembler.recognize", return_value="Forced") as mock_recognize:
        result = runner.invoke(app, ["-x", str(index), "-m", "0010", "-f", "-w", str(tmp_path / "w")])
    assert result.exit_code == 0, result.output
    assert mock_recognize.call_count == 1
    assert "1\n00:00:05,000 --> 00:00:07,500\nForced\n" in result.stdout


def test_output_file(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    out = tmp_path / "movie.srt"
    with patch("spu2srt.assembler.recognize", return_value="Text"):
        result = runner.invoke(app, ["-x", str(index), "-m", "0010", "-o", str(out), "-w", str(tmp_path / "w")])
    assert result.exit_code == 0, result.output
    content = out.read_text(encoding="utf-8")
    assert content.startswith("1\n00:00:01,230 --> 00:00:03,450\nText\n")
    assert content.count("-->") == 2


def test_unwritable_output(tmp_path):
    index = _write_subtitles(tmp_path / "subs")
    out = tmp_path / "no_such_dir" / "movie.srt"
    with patch("spu2srt.assembler.recognize", return_value="Text"):
        result = runner.invoke(app, ["-x", str(index), "-m", "0010", "-o", str(out), "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "Cannot write output file" in result.output



def test_ledger_failure_is_not_an_output_error(tmp_path):
    """A full work directory while recording artifacts is reported as such."""
    index = _write_subtitles(tmp_path / "subs")
    full = OSError(28, "No space left on device")
    with patch("spu2srt.cache.atomic_write_bytes", side_effect=full):
        result = runner.invoke(app, ["-x", str(index), "-m", "0010", "-w", str(tmp_path / "w")])
    assert result.exit_code == 1
    assert "Cannot update artifact" in result.output
    assert "Cannot write output file" not in result.output


class TestSourceFlow:
    """Extraction and demux are checkpointed in the work directory."""

    @pytest.fixture
    def dvd(self, tmp_path):
        source = tmp_path / "MOVIE"
        (source / "VIDEO_TS").mkdir(parents=True)
        return source

    def _fake_demux(self, vobs, out_dir, stream):
        return _write_subtitles(out_dir)

    def test_extract_then_resume(self, tmp_path, dvd):
        work = tmp_path / "w"
        vob = tmp_path / "VTS_01_1.VOB"
        with patch("spu2srt.cli.extract_title", return_value=[vob]) as mock_extract, \
             patch("spu2srt.cli.demux_subtitles", side_effect=self._fake_demux) as mock_demux, \
             patch("spu2srt.assembler.recognize", return_value="Hi"):
            first = runner.invoke(app, [str(dvd), "-t", "2", "-s", "1", "-m", "0010", "-w", str(work)])
            second = runner.invoke(app, [str(dvd), "-t", "2", "-s", "1", "-m", "0010", "-w", str(work)])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        mock_extract.assert_called_once_with(dvd, work / "vob", 2)
        mock_demux.assert_called_once_with([vob], work / "subs", 1)
        assert "Resuming" in second.output
        assert second.stdout.count("-->") == 2

        ckpt = load_checkpoint(work)
        assert ckpt.is_stage_complete("extract") and ckpt.is_stage_complete("demux")

    def test_other_title_starts_fresh(self, tmp_path, dvd):
        work = tmp_path / "w"
        with patch("spu2srt.cli.extract_title", return_value=[tmp_path / "a.VOB"]) as mock_extract, \
             patch("spu2srt.cli.demux_subtitles", side_effect=self._fake_demux), \
             patch("spu2srt.assembler.recognize", return_value="Hi"):
            runner.invoke(app, [str(dvd), "-t", "1", "-m", "0010", "-w", str(work)])
            result = runner.invoke(app, [str(dvd), "-t", "3", "-m", "0010", "-w", str(work)])

        assert result.exit_code == 0, result.output
        assert mock_extract.call_count == 2
        assert "Stale checkpoint" in result.output

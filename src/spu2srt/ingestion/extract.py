"""DVD title extraction (dvdbackup) and subpicture demux (spuunmux).

dvdbackup routinely exits non-zero after recovering from unreadable sectors,
so its exit status alone is only reported; the step fails when it leaves no
VOB files behind. spuunmux failures are always fatal.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from spu2srt.config import get_tool
from spu2srt.errors import ExternalToolError

logger = logging.getLogger(__name__)

DVD_NAME = "dvd"
INDEX_PREFIX = "sub"


def _stderr_tail(exc: subprocess.CalledProcessError) -> str:
    stderr = exc.stderr or b""
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    return stderr.strip()[-500:]


def extract_title(source: Path, out_dir: Path, title: int) -> list[Path]:
    """Copy DVD *title* from *source* into *out_dir* and return its VOB files.

    Raises
    ------
    ExternalToolError
        If dvdbackup is missing or produced no ``VTS_*.VOB`` files.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    cmd = [
        get_tool("dvdbackup"),
        "-i", str(source),
        "-o", str(out_dir),
        "-t", str(title),
        "-n", DVD_NAME,
    ]
    logger.debug("running: %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, capture_output=True)
    except subprocess.CalledProcessError as exc:
        logger.warning(
            "dvdbackup exited with status %d; continuing with what was copied (%s)",
            exc.returncode,
            _stderr_tail(exc) or "no stderr",
        )
    except FileNotFoundError as exc:
        raise ExternalToolError("dvdbackup", "executable not found") from exc

    vobs = sorted((out_dir / DVD_NAME / "VIDEO_TS").glob("VTS_*.VOB"))
    if not vobs:
        raise ExternalToolError(
            "dvdbackup",
            f"no VTS_*.VOB files for title {title} under {out_dir / DVD_NAME / 'VIDEO_TS'}",
        )
    return vobs


def demux_subtitles(vobs: list[Path], out_dir: Path, stream: int) -> Path:
    """Demux subpicture *stream* from *vobs* into PNGs plus a timing index.

    Returns the path of the spuunmux XML index.

    Raises
    ------
    ExternalToolError
        If spuunmux is missing, exits non-zero or writes no index.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    prefix = out_dir / INDEX_PREFIX
    cmd = [get_tool("spuunmux"), "-s", str(stream), "-o", str(prefix), *(str(v) for v in vobs)]
    logger.debug("running: %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, capture_output=True)
    except subprocess.CalledProcessError as exc:
        raise ExternalToolError(
            "spuunmux",
            f"exit status {exc.returncode}: {_stderr_tail(exc)}",
        ) from exc
    except FileNotFoundError as exc:
        raise ExternalToolError("spuunmux", "executable not found") from exc

    index_path = prefix.with_suffix(".xml")
    if not index_path.exists():
        raise ExternalToolError("spuunmux", f"no timing index written at {index_path}")
    return index_path

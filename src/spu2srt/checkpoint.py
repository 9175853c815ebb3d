"""Extraction checkpoint: lets a re-run skip dvdbackup and spuunmux.

``<work_dir>/run_checkpoint.json`` records which extraction stages finished
and what they produced. It is keyed on (source, title, stream); a checkpoint
written for another request is treated as stale and ignored.
"""
import json
import logging
import os
import tempfile
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Optional

CHECKPOINT_FILENAME = "run_checkpoint.json"

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: Path, data: bytes, suffix: str) -> None:
    """Replace *path* with *data* via a fsynced temp file in the same directory.

    Readers see either the previous content or *data*, never a torn write.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=suffix)
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp_path, path)
    except Exception:
        os.close(fd)
        os.unlink(tmp_path)
        raise


@dataclass
class RunCheckpoint:
    source: str               # DVD device, ISO or directory as given on the command line
    title: int
    stream: int

    stages_complete: list[str] = field(default_factory=list)

    vob_files: list[str] = field(default_factory=list)    # set by "extract"
    index_path: Optional[str] = None                       # set by "demux"

    def matches(self, source: str, title: int, stream: int) -> bool:
        """Return True if this checkpoint was written for the same extraction request."""
        return (self.source, self.title, self.stream) == (source, title, stream)

    def is_stage_complete(self, stage: str) -> bool:
        return stage in self.stages_complete

    def mark_stage_complete(self, stage: str) -> None:
        if stage not in self.stages_complete:
            self.stages_complete.append(stage)


def load_checkpoint(work_dir: Path) -> Optional[RunCheckpoint]:
    """Return the checkpoint in *work_dir*, or None if there is none or it is unreadable."""
    ckpt_path = work_dir / CHECKPOINT_FILENAME
    if not ckpt_path.exists():
        return None
    try:
        return RunCheckpoint(**json.loads(ckpt_path.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, TypeError):
        logger.warning("Ignoring unreadable checkpoint %s", ckpt_path)
        return None


def save_checkpoint(checkpoint: RunCheckpoint, work_dir: Path) -> None:
    """Write *checkpoint* to *work_dir* atomically."""
    data = json.dumps(asdict(checkpoint), indent=2).encode("utf-8")
    atomic_write_bytes(work_dir / CHECKPOINT_FILENAME, data, suffix=".ckpt.tmp")

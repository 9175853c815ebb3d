"""Completion markers for per-image intermediate artifacts.

Masking and OCR are expensive and their outputs are reused across runs. Rather
than trusting that "the output file exists" means "the step finished", each
step records a marker after it has written its output:

    CacheKey(source, mtime, size, operation)  ->  output path

``source``/``mtime``/``size`` identify the input file (the same stat pair
used to invalidate caches elsewhere: replacing the input changes either
value); ``operation`` identifies the step and its parameters, e.g.
``"mask:0010"`` or ``"hocr:eng"``.

Ledger file format
------------------
:class:`LedgerArtifactCache` persists markers as a msgpack-encoded list:

    [
        {"source": "/abs/sub0001.png", "mtime": 1709123456.7, "size": 812,
         "operation": "mask:0010", "output": "/abs/sub0001.0010.png"},
        ...
    ]

It is rewritten atomically (mkstemp + fsync + os.replace) after every change,
so a crash leaves either the previous ledger or the new one. A lookup only hits
when the recorded output still exists on disk.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import msgpack

from spu2srt.checkpoint import atomic_write_bytes
from spu2srt.errors import CacheWriteError

__all__ = [
    "ArtifactCache",
    "CacheKey",
    "LedgerArtifactCache",
    "MemoryArtifactCache",
    "LEDGER_FILENAME",
]

LEDGER_FILENAME = "artifacts.msgpack"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Identity of one (input file, operation) pair."""

    source: str
    mtime: float
    size: int
    operation: str

    @classmethod
    def for_file(cls, path: Path, operation: str) -> "CacheKey":
        stat = path.stat()
        return cls(str(path.resolve()), stat.st_mtime, stat.st_size, operation)


class ArtifactCache:
    """Maps a :class:`CacheKey` to the output produced for it."""

    def lookup(self, key: CacheKey) -> Optional[Path]:
        raise NotImplementedError

    def record(self, key: CacheKey, output: Path) -> None:
        raise NotImplementedError

    def forget(self, key: CacheKey) -> None:
        raise NotImplementedError


class MemoryArtifactCache(ArtifactCache):
    """In-process cache; markers vanish with the process."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, Path] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, key: CacheKey) -> Optional[Path]:
        return self._entries.get(key)

    def record(self, key: CacheKey, output: Path) -> None:
        self._entries[key] = output

    def forget(self, key: CacheKey) -> None:
        self._entries.pop(key, None)


class LedgerArtifactCache(ArtifactCache):
    """Markers persisted to ``<work_dir>/artifacts.msgpack``."""

    def __init__(self, work_dir: Path) -> None:
        self.work_dir = work_dir
        self.path = work_dir / LEDGER_FILENAME
        self._entries: dict[CacheKey, Path] = self._load()

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, key: CacheKey) -> Optional[Path]:
        output = self._entries.get(key)
        if output is None:
            return None
        if not output.exists():
            # Marker outlived its artifact (e.g. tidied up after a run)
            return None
        return output

    def record(self, key: CacheKey, output: Path) -> None:
        self._entries[key] = output
        self._save()

    def forget(self, key: CacheKey) -> None:
        if self._entries.pop(key, None) is not None:
            self._save()

    def _load(self) -> dict[CacheKey, Path]:
        if not self.path.exists():
            return {}
        try:
            items = msgpack.unpackb(self.path.read_bytes(), raw=False, strict_map_key=False)
            entries: dict[CacheKey, Path] = {}
            for item in items:
                output = Path(item.pop("output"))
                entries[CacheKey(**item)] = output
            return entries
        except Exception:
            # Corrupt ledger, missing keys, type errors: start from scratch
            logger.warning("Ignoring unreadable artifact ledger %s", self.path)
            return {}

    def _save(self) -> None:
        payload = [
            {**asdict(key), "output": str(output)}
            for key, output in self._entries.items()
        ]
        try:
            atomic_write_bytes(self.path, msgpack.packb(payload, use_bin_type=True), suffix=".cache.tmp")
        except OSError as exc:
            raise CacheWriteError(self.path, str(exc)) from exc

"""Run configuration and mask pattern parsing.

Everything a run needs is carried in an immutable :class:`RunConfig` that the
CLI builds once and passes down; no component reads option state from module
globals.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from spu2srt.errors import ConfigurationError

_LANGUAGE_RE = re.compile(r"^[a-z_]{3,}(\+[a-z_]{3,})*$")


@dataclass(frozen=True)
class MaskPattern:
    """Black/white assignment per palette entry; bit 1 renders black."""

    bits: tuple[int, ...]

    def __str__(self) -> str:
        return "".join(str(b) for b in self.bits)

    def __len__(self) -> int:
        return len(self.bits)

    @classmethod
    def parse(cls, text: str) -> "MaskPattern":
        """Parse a bit string such as ``"0010"``.

        Only one-hot patterns are accepted; anything else raises
        :class:`ConfigurationError`.
        """
        text = text.strip()
        if not text or set(text) - {"0", "1"}:
            raise ConfigurationError(
                f"Mask pattern '{text}' must consist of 0 and 1 only.",
            )
        bits = tuple(int(ch) for ch in text)
        if sum(bits) != 1:
            raise ConfigurationError(
                f"Mask pattern '{text}' must contain exactly one 1 bit.",
                tip="Valid 4-color patterns are 1000, 0100, 0010 and 0001.",
            )
        return cls(bits)

    @classmethod
    def one_hot(cls, length: int) -> list["MaskPattern"]:
        """Return every canonical pattern for a palette of *length* colors."""
        return [
            cls(tuple(1 if i == hot else 0 for i in range(length)))
            for hot in range(length)
        ]


class RunConfig(BaseModel):
    """Options shared by every stage of a conversion run."""

    model_config = ConfigDict(frozen=True)

    language: str = "eng"
    only_forced: bool = False
    mask: Optional[MaskPattern] = None
    untidy: bool = False
    verbose: bool = False

    @field_validator("language")
    @classmethod
    def _check_language(cls, value: str) -> str:
        value = value.strip()
        if not _LANGUAGE_RE.match(value):
            raise ValueError(
                f"'{value}' is not a tesseract language code (e.g. eng, deu, eng+fra)"
            )
        return value

    @field_validator("mask", mode="before")
    @classmethod
    def _parse_mask(cls, value: object) -> object:
        if isinstance(value, str):
            return MaskPattern.parse(value)
        return value


def get_tool(name: str) -> str:
    """Return the executable for external tool *name*.

    Respects ``SPU2SRT_<NAME>`` (e.g. ``SPU2SRT_TESSERACT``); falls back to
    the bare name so PATH lookup applies.
    """
    return os.environ.get(f"SPU2SRT_{name.upper()}", name)


def default_work_dir(source: Optional[Path], index: Optional[Path]) -> Path:
    """Return ``./<stem>_spu2srt_work`` for the given input."""
    anchor = source if source is not None else index
    stem = anchor.stem if anchor is not None and anchor.stem else "dvd"
    return Path.cwd() / f"{stem}_spu2srt_work"

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PaletteColor:
    """One palette entry of an indexed subtitle image."""

    red: int
    green: int
    blue: int
    alpha: int          # opacity, 0 = fully transparent
    count: int = 0      # pixels carrying this color in the sampled image

    @property
    def rgba(self) -> tuple[int, int, int, int]:
        return (self.red, self.green, self.blue, self.alpha)


# Position in the tuple is the index a mask pattern bit refers to.
Palette = tuple[PaletteColor, ...]


@dataclass(frozen=True)
class SubtitleEntry:
    """A single <spu> occurrence from the timing index."""

    image: Optional[Path]
    start: Optional[str]    # source format, e.g. "00:01:23.45"
    end: Optional[str]
    forced: Optional[bool] = None

    @property
    def is_complete(self) -> bool:
        return self.image is not None and bool(self.start) and bool(self.end)


@dataclass
class OcrDocument:
    """Lines of raw word tokens recovered from hOCR markup."""

    lines: list[list[str]] = field(default_factory=list)

    def render(self) -> str:
        return "\n".join(" ".join(words) for words in self.lines)


@dataclass(frozen=True)
class OutputEntry:
    """A numbered SRT block ready to be written."""

    index: int
    start: str      # "HH:MM:SS,mmm"
    end: str
    text: str

    def to_srt(self) -> str:
        return f"{self.index}\n{self.start} --> {self.end}\n{self.text}\n"

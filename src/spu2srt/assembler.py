"""Drive OCR and timestamp conversion over a timing index and emit numbered SRT entries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, TextIO

from spu2srt.cache import ArtifactCache
from spu2srt.config import RunConfig
from spu2srt.errors import ConfigurationError, OutputWriteError
from spu2srt.imaging.mask import check_pattern
from spu2srt.models import OutputEntry, Palette, SubtitleEntry
from spu2srt.ocr.engine import discard_intermediates, recognize
from spu2srt.timing import convert_timestamp

logger = logging.getLogger(__name__)


def is_eligible(entry: SubtitleEntry, only_forced: bool) -> bool:
    """Return True if *entry* is complete and passes the forced-only filter."""
    if not entry.is_complete:
        return False
    if only_forced and entry.forced is not True:
        return False
    return True


def find_sample_image(entries: Iterable[SubtitleEntry], only_forced: bool = False) -> Optional[Path]:
    """Return the image of the first eligible entry that exists on disk."""
    for entry in entries:
        if is_eligible(entry, only_forced) and entry.image.exists():
            return entry.image
    return None


def assemble(
    entries: Iterable[SubtitleEntry],
    config: RunConfig,
    palette: Palette,
    cache: Optional[ArtifactCache] = None,
    progress_callback: Callable[[], None] | None = None,
) -> Iterator[OutputEntry]:
    """Yield one :class:`OutputEntry` per eligible entry whose image exists.

    Entries are processed strictly in index order. Sequence numbers start at
    1 and only advance for emitted entries. Incomplete entries, entries
    filtered by ``only_forced`` and entries whose image is missing are
    skipped with a log message. Unless ``config.untidy`` is set, an entry's
    masked image and hOCR are deleted once the consumer has taken it.

    Parameters
    ----------
    progress_callback:
        Optional callable invoked once per input entry, skipped or not.

    Raises
    ------
    ConfigurationError
        If no mask pattern is configured or it does not fit *palette*.
    """
    if config.mask is None:
        raise ConfigurationError("No mask pattern chosen.")
    check_pattern(palette, config.mask)

    sequence = 0
    for position, entry in enumerate(entries, start=1):
        try:
            if not entry.is_complete:
                logger.warning("entry %d: missing image, start or end; skipped", position)
                continue
            if config.only_forced and entry.forced is not True:
                logger.debug("entry %d (%s): not forced; skipped", position, entry.image.name)
                continue
            if not entry.image.exists():
                logger.warning("entry %d: image %s not found; skipped", position, entry.image)
                continue

            text = recognize(entry.image, config.mask, palette, config.language, cache=cache)
            sequence += 1
            logger.debug("entry %d -> #%d: %r", position, sequence, text)
            yield OutputEntry(
                index=sequence,
                start=convert_timestamp(entry.start),
                end=convert_timestamp(entry.end),
                text=text,
            )
            if not config.untidy:
                discard_intermediates(entry.image, config.mask, config.language, cache=cache)
        finally:
            if progress_callback is not None:
                progress_callback()


def write_srt(outputs: Iterable[OutputEntry], stream: TextIO) -> int:
    """Write *outputs* as SRT blocks to *stream*; return the number written.

    Only failures of *stream* itself become :class:`OutputWriteError`;
    errors raised while producing *outputs* propagate unchanged.
    """
    count = 0
    for entry in outputs:
        block = entry.to_srt() if not count else "\n" + entry.to_srt()
        try:
            stream.write(block)
            stream.flush()
        except OSError as exc:
            raise OutputWriteError(Path(getattr(stream, "name", "<stream>")), str(exc)) from exc
        count += 1
    return count

"""spuunmux timing index parser.

spuunmux writes one XML document per demuxed stream::

    <subpictures>
      <stream>
        <spu start="00:00:01.23" end="00:00:03.45" image="sub0001.png"
             xoffset="180" yoffset="400" force="yes"/>
        ...
      </stream>
    </subpictures>

Entries are returned exactly in document order; missing attributes are kept
as ``None`` so the assembler can skip them individually.
"""

from __future__ import annotations

from pathlib import Path

from lxml import etree

from spu2srt.errors import TimingIndexError
from spu2srt.models import SubtitleEntry
from spu2srt.timing import is_valid_timestamp

_TRUE_VALUES = frozenset({"yes", "true", "1"})


def _forced(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in _TRUE_VALUES


def load_timing_index(index_path: Path) -> list[SubtitleEntry]:
    """Parse *index_path* into :class:`SubtitleEntry` objects in index order.

    Image references are resolved against the index file's directory.

    Raises
    ------
    TimingIndexError
        If the file is unreadable or malformed, has no ``<stream>`` element,
        or carries a timestamp that is not ``H:MM:SS[.f]``.
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.parse(str(index_path), parser).getroot()
    except OSError as exc:
        raise TimingIndexError(index_path, str(exc)) from exc
    except etree.XMLSyntaxError as exc:
        raise TimingIndexError(index_path, f"not well-formed XML: {exc}") from exc

    stream = root if root.tag == "stream" else root.find("stream")
    if stream is None:
        raise TimingIndexError(index_path, "no <stream> element holding <spu> entries")

    base_dir = index_path.parent
    entries: list[SubtitleEntry] = []
    for spu in stream.iter("spu"):
        start = spu.get("start")
        end = spu.get("end")
        for value in (start, end):
            if value and not is_valid_timestamp(value):
                raise TimingIndexError(
                    index_path,
                    f"line {spu.sourceline}: bad timestamp {value!r}",
                )
        image = spu.get("image")
        entries.append(
            SubtitleEntry(
                image=base_dir / image if image else None,
                start=start or None,
                end=end or None,
                forced=_forced(spu.get("force")),
            )
        )
    return entries

"""Timestamp conversion from spuunmux (``H:MM:SS.ff``) to SRT (``HH:MM:SS,mmm``)."""

from __future__ import annotations

import re

_TIMESTAMP_RE = re.compile(r"^(\d+):(\d{1,2}):(\d{1,2})$")


def is_valid_timestamp(value: str) -> bool:
    """Return True if *value* can be passed to :func:`convert_timestamp`."""
    try:
        convert_timestamp(value)
    except ValueError:
        return False
    return True


def convert_timestamp(value: str) -> str:
    """Convert a source timestamp to the SRT timestamp format.

    The fractional part follows the *last* ``.`` in *value* and is padded
    with zeros or truncated to exactly three digits, so both centisecond
    (``00:00:06.16``) and decisecond (``00:01:23.4``) inputs come out as
    milliseconds. Hours are zero-padded to two digits.

    Raises
    ------
    ValueError
        If *value* is not ``H:MM:SS`` with an optional fraction.
    """
    value = value.strip()
    clock, sep, fraction = value.rpartition(".")
    if not sep:
        clock, fraction = value, ""
    if not fraction.isdigit() and fraction != "":
        raise ValueError(f"invalid fractional seconds in timestamp {value!r}")

    match = _TIMESTAMP_RE.match(clock)
    if match is None:
        raise ValueError(f"timestamp {value!r} is not H:MM:SS[.fff]")
    hours, minutes, seconds = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        raise ValueError(f"timestamp {value!r} has out-of-range minutes or seconds")

    millis = (fraction + "000")[:3]
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis}"

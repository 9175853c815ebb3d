"""Calibration images: one binarized copy of a sample subpicture per one-hot pattern.

A human looks at the results and picks the pattern that shows black text on a
white background; that pattern is then passed with ``--mask``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from spu2srt.config import MaskPattern
from spu2srt.imaging.mask import apply_mask
from spu2srt.models import Palette

logger = logging.getLogger(__name__)


def generate_calibration_images(
    sample: Path,
    palette: Palette,
    out_dir: Path,
) -> list[tuple[MaskPattern, Path]]:
    """Write ``<out_dir>/<bits>.png`` for every one-hot pattern of *palette*.

    Existing calibration images are left as they are. Returns
    (pattern, image path) pairs in pattern order.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    results: list[tuple[MaskPattern, Path]] = []
    for pattern in MaskPattern.one_hot(len(palette)):
        path = apply_mask(sample, palette, pattern, out_dir / f"{pattern}.png")
        logger.debug("calibration image %s", path)
        results.append((pattern, path))
    return results

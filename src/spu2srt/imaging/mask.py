"""Binarize a subtitle image by painting each palette color black or white."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image

from spu2srt.cache import ArtifactCache, CacheKey
from spu2srt.config import MaskPattern
from spu2srt.errors import ConfigurationError, ImageReadError, OutputWriteError
from spu2srt.imaging.palette import load_rgba
from spu2srt.models import Palette

logger = logging.getLogger(__name__)

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
BACKGROUND = (255, 255, 255)


def check_pattern(palette: Palette, pattern: MaskPattern) -> None:
    """Raise :class:`ConfigurationError` unless *pattern* has one bit per palette color."""
    if len(pattern) != len(palette):
        raise ConfigurationError(
            f"Mask pattern '{pattern}' has {len(pattern)} bits but the palette has "
            f"{len(palette)} colors.",
            tip="Run without --mask to generate calibration images for this palette.",
        )


def masked_path_for(image_path: Path, pattern: MaskPattern) -> Path:
    """Return where the binarized variant of *image_path* is written."""
    return image_path.with_name(f"{image_path.stem}.{pattern}.png")


def binarize(rgba: np.ndarray, palette: Palette, pattern: MaskPattern) -> Image.Image:
    """Return an RGB image with palette colors mapped to black (bit 1) or white (bit 0).

    Pixels are matched against the *original* colors, so an earlier
    replacement can never be picked up by a later one. Pixels matching no
    palette entry (anti-aliased edges) keep their color. Transparency is
    flattened onto a white background.
    """
    check_pattern(palette, pattern)
    out = rgba.copy()
    for color, bit in zip(palette, pattern.bits):
        hits = np.all(rgba == np.array(color.rgba, dtype=rgba.dtype), axis=-1)
        out[hits] = BLACK if bit else WHITE

    layer = Image.fromarray(out, "RGBA")
    flat = Image.new("RGB", layer.size, BACKGROUND)
    flat.paste(layer, mask=layer.getchannel("A"))
    return flat


def apply_mask(
    image_path: Path,
    palette: Palette,
    pattern: MaskPattern,
    output_path: Optional[Path] = None,
    cache: Optional[ArtifactCache] = None,
) -> Path:
    """Write the binarized variant of *image_path* and return its path.

    The operation is idempotent. With a *cache*, a recorded marker for
    (*image_path*, ``mask:<pattern>``) whose output still exists skips the
    work; without one, an existing *output_path* does.

    Raises
    ------
    ConfigurationError
        If the pattern length differs from the palette length.
    ImageReadError
        If *image_path* cannot be read or the output cannot be written.
    """
    check_pattern(palette, pattern)
    if output_path is None:
        output_path = masked_path_for(image_path, pattern)

    key = None
    if cache is not None:
        try:
            key = CacheKey.for_file(image_path, f"mask:{pattern}")
        except OSError as exc:
            raise ImageReadError(image_path, str(exc)) from exc
        cached = cache.lookup(key)
        if cached is not None:
            logger.debug("mask cache hit: %s", cached.name)
            return cached
    elif output_path.exists():
        logger.debug("mask output exists: %s", output_path.name)
        return output_path

    flat = binarize(load_rgba(image_path), palette, pattern)
    try:
        flat.save(output_path, format="PNG")
    except OSError as exc:
        raise OutputWriteError(output_path, str(exc)) from exc

    if cache is not None and key is not None:
        cache.record(key, output_path)
    return output_path

"""Palette extraction for indexed DVD subtitle images.

spuunmux writes each subpicture as a 4-color paletted PNG whose transparency
lives in a ``tRNS`` chunk. Pillow expands that to RGBA on conversion, so the
alpha reported here is already opacity (0 = transparent) and needs no
inversion.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from spu2srt.errors import ImageReadError
from spu2srt.models import Palette, PaletteColor


def load_rgba(image_path: Path) -> np.ndarray:
    """Return *image_path* as an ``(h, w, 4)`` uint8 array.

    Raises
    ------
    ImageReadError
        If the file is missing or not an image Pillow can decode.
    """
    try:
        with Image.open(image_path) as img:
            return np.array(img.convert("RGBA"))
    except (OSError, UnidentifiedImageError) as exc:
        raise ImageReadError(image_path, str(exc)) from exc


def extract_palette(image_path: Path) -> Palette:
    """Return the ordered palette of *image_path* with per-color pixel counts.

    Ordering is deterministic for identical pixels:

    * paletted (``P`` mode) images list the colors of the used palette
      indices in index order;
    * any other image lists its distinct RGBA colors in order of first
      appearance in a row-major scan.

    Callers treat the position in the returned tuple as the index a
    :class:`~spu2srt.config.MaskPattern` bit refers to.

    Raises
    ------
    ImageReadError
        If the image cannot be read.
    """
    try:
        with Image.open(image_path) as img:
            img.load()
            rgba = np.array(img.convert("RGBA"))
            indices = np.array(img) if img.mode == "P" else None
    except (OSError, UnidentifiedImageError) as exc:
        raise ImageReadError(image_path, str(exc)) from exc

    flat_rgba = rgba.reshape(-1, 4)
    if indices is not None:
        keys = indices.reshape(-1)
    else:
        # Pack RGBA into one uint32 per pixel so np.unique works on scalars
        keys = flat_rgba.astype(np.uint32) @ np.array([1 << 24, 1 << 16, 1 << 8, 1], dtype=np.uint32)

    uniques, first_seen, counts = np.unique(keys, return_index=True, return_counts=True)
    order = np.argsort(uniques) if indices is not None else np.argsort(first_seen)

    colors: list[PaletteColor] = []
    for pos in order:
        r, g, b, a = (int(v) for v in flat_rgba[first_seen[pos]])
        colors.append(PaletteColor(r, g, b, a, int(counts[pos])))
    return tuple(colors)

"""Per-image OCR: binarize, run tesseract in hOCR mode, scrape and clean the text.

Both intermediate artifacts (the masked PNG and its ``.hocr``) sit next to
the source subpicture and are reused on later runs, so an interrupted
conversion resumes without repeating finished images.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Optional

from spu2srt.cache import ArtifactCache, CacheKey
from spu2srt.config import MaskPattern, get_tool
from spu2srt.errors import CacheWriteError, ExternalToolError, ImageReadError, OcrOutputError
from spu2srt.imaging.mask import apply_mask, masked_path_for
from spu2srt.models import Palette
from spu2srt.ocr.cleanup import DEFAULT_RULES, RewriteRule, clean_text
from spu2srt.ocr.hocr import parse_hocr

logger = logging.getLogger(__name__)


def hocr_path_for(image_path: Path) -> Path:
    """Return where tesseract writes the hOCR for *image_path*."""
    return image_path.with_suffix(".hocr")


def run_tesseract(image_path: Path, language: str) -> Path:
    """Run ``tesseract IMAGE BASE -l LANG hocr`` and return the hOCR path.

    Raises
    ------
    ExternalToolError
        If tesseract is not installed or exits non-zero.
    """
    base = image_path.with_suffix("")
    cmd = [get_tool("tesseract"), str(image_path), str(base), "-l", language, "hocr"]
    logger.debug("running: %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, capture_output=True)
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        raise ExternalToolError(
            "tesseract",
            f"exit status {exc.returncode} on '{image_path.name}': {stderr[-500:]}",
        ) from exc
    except FileNotFoundError as exc:
        raise ExternalToolError("tesseract", "executable not found") from exc
    return hocr_path_for(image_path)


def ocr_to_hocr(
    masked_path: Path,
    language: str,
    cache: Optional[ArtifactCache] = None,
) -> Path:
    """Return the hOCR for *masked_path*, invoking tesseract only when needed.

    Raises
    ------
    ImageReadError
        If *masked_path* cannot be stat'ed for the cache key.
    OcrOutputError
        If tesseract ran but the hOCR file cannot be found.
    """
    hocr_path = hocr_path_for(masked_path)
    key = None
    if cache is not None:
        try:
            key = CacheKey.for_file(masked_path, f"hocr:{language}")
        except OSError as exc:
            raise ImageReadError(masked_path, str(exc)) from exc
        cached = cache.lookup(key)
        if cached is not None:
            logger.debug("hocr cache hit: %s", cached.name)
            return cached
    elif hocr_path.exists():
        logger.debug("hocr output exists: %s", hocr_path.name)
        return hocr_path

    hocr_path = run_tesseract(masked_path, language)
    if not hocr_path.exists():
        raise OcrOutputError(hocr_path, "tesseract finished but wrote no hOCR file")
    if cache is not None and key is not None:
        cache.record(key, hocr_path)
    return hocr_path


def recognize(
    image_path: Path,
    pattern: MaskPattern,
    palette: Palette,
    language: str,
    cache: Optional[ArtifactCache] = None,
    rules: Iterable[RewriteRule] = DEFAULT_RULES,
) -> str:
    """Return the cleaned text of one subtitle image (possibly multi-line or empty).

    Raises
    ------
    ConfigurationError
        If *pattern* does not fit *palette*.
    ImageReadError
        If the image cannot be read.
    ExternalToolError
        If tesseract fails.
    OcrOutputError
        If the hOCR output is missing or malformed.
    """
    masked = apply_mask(image_path, palette, pattern, cache=cache)
    hocr = ocr_to_hocr(masked, language, cache=cache)
    document = parse_hocr(hocr)
    return clean_text(document.render(), rules)


def discard_intermediates(
    image_path: Path,
    pattern: MaskPattern,
    language: str,
    cache: Optional[ArtifactCache] = None,
) -> None:
    """Delete the masked image and hOCR of *image_path*, forgetting their markers.

    Best effort: files that are already gone or cannot be removed are
    skipped.
    """
    masked = masked_path_for(image_path, pattern)
    hocr = hocr_path_for(masked)
    if cache is not None:
        for path, operation, target in (
            (image_path, f"mask:{pattern}", masked),
            (masked, f"hocr:{language}", hocr),
        ):
            try:
                cache.forget(CacheKey.for_file(path, operation))
            except (OSError, CacheWriteError):
                logger.debug("cannot forget %s; marker for %s left in place", path.name, target.name)
    for path in (hocr, masked):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("could not remove %s: %s", path.name, exc)

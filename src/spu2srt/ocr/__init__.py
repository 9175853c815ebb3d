"""OCR of binarized subtitle images via tesseract hOCR output."""
from spu2srt.ocr.cleanup import DEFAULT_RULES, RewriteRule, clean_text, rule
from spu2srt.ocr.engine import discard_intermediates, hocr_path_for, recognize, run_tesseract
from spu2srt.ocr.hocr import parse_hocr, parse_hocr_string

__all__ = [
    "DEFAULT_RULES",
    "RewriteRule",
    "clean_text",
    "discard_intermediates",
    "hocr_path_for",
    "parse_hocr",
    "parse_hocr_string",
    "recognize",
    "rule",
    "run_tesseract",
]

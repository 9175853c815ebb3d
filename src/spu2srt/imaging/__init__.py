"""Palette extraction, mask-based binarization and calibration for subtitle images."""
from spu2srt.imaging.palette import extract_palette, load_rgba
from spu2srt.imaging.mask import apply_mask, binarize, check_pattern, masked_path_for
from spu2srt.imaging.calibrate import generate_calibration_images

__all__ = [
    "apply_mask",
    "binarize",
    "check_pattern",
    "extract_palette",
    "generate_calibration_images",
    "load_rgba",
    "masked_path_for",
]

"""Line grouping and font metrics derived from OCR geometry."""

from .lines import DEFAULT_VARIANCE, TextRun, merge_words_to_runs
from .fonts import (
    DEFAULT_FONT,
    MIN_TEXT_HEIGHT,
    POINTS_PER_UNIT,
    estimate_font_size,
    find_font_path,
    resolve_font,
)

__all__ = [
    "DEFAULT_VARIANCE",
    "TextRun",
    "merge_words_to_runs",
    "DEFAULT_FONT",
    "MIN_TEXT_HEIGHT",
    "POINTS_PER_UNIT",
    "estimate_font_size",
    "find_font_path",
    "resolve_font",
]

"""Font size estimation from word geometry and PDF font resolution.

Font files are searched in FONT_PATH (``os.pathsep``-separated), the system
font directories and ``config/fonts`` under the project root.
"""

from __future__ import annotations

import logging
import math
import os
from typing import List, Optional, Union

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

from scanrebuild.analysis.model import Word

from .lines import TextRun

logger = logging.getLogger(__name__)

POINTS_PER_UNIT = 72.0
MIN_TEXT_HEIGHT = 0.1
DEFAULT_FONT = "Helvetica"

_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
_CONFIG_FONTS_DIR = os.path.join(_ROOT_DIR, "config", "fonts")
SAFE_FONT_EXTS = (".ttf", ".otf", ".ttc")


def estimate_font_size(
    item: Union[TextRun, Word],
    min_height: float = MIN_TEXT_HEIGHT,
    scale: float = POINTS_PER_UNIT,
) -> float:
    """Font size in points for a run (its first word) or a single word.

    Doxygen:
    - @param item: Run or word to size.
    - @param min_height: Physical height used when the polygon height is zero, negative or not finite.
    - @param scale: Points per physical unit.
    - @return: Positive font size in points.
    """
    word = item.first if isinstance(item, TextRun) else item
    height = word.text_height
    if not (math.isfinite(height) and height > 0):
        height = min_height
    return height * scale


def _font_dirs() -> List[str]:
    dirs = [p for p in os.environ.get("FONT_PATH", "").split(os.pathsep) if p.strip()]
    windir = os.environ.get("WINDIR") or os.environ.get("SystemRoot")
    if windir:
        dirs.append(os.path.join(windir, "Fonts"))
    dirs.extend([
        "/usr/share/fonts",
        "/usr/local/share/fonts",
        os.path.expanduser("~/.fonts"),
        "/Library/Fonts",
        "/System/Library/Fonts",
        _CONFIG_FONTS_DIR,
    ])
    return dirs


def find_font_path(name: str) -> Optional[str]:
    """Locate a TrueType file by absolute path or case-insensitive file name."""
    if os.path.isabs(name):
        return name if os.path.exists(name) else None
    wanted = name.lower()
    if not wanted.endswith(SAFE_FONT_EXTS):
        wanted += ".ttf"
    for d in _font_dirs():
        if not os.path.isdir(d):
            continue
        for dirpath, _, files in os.walk(d):
            for fname in files:
                if fname.lower() == wanted:
                    return os.path.join(dirpath, fname)
    return None


def resolve_font(family: str = DEFAULT_FONT, font_path: Optional[str] = None) -> str:
    """Return a font name the PDF canvas can draw with.

    Built-in PDF fonts are returned unchanged. Otherwise a TrueType file
    (``font_path`` or a file named after ``family``) is registered under its
    stem. Falls back to Helvetica when nothing can be loaded.
    """
    if not font_path and family in pdfmetrics.standardFonts:
        return family
    if family in pdfmetrics.getRegisteredFontNames():
        return family

    path = font_path or find_font_path(family)
    if path:
        name = os.path.splitext(os.path.basename(path))[0] if font_path else family
        try:
            if name not in pdfmetrics.getRegisteredFontNames():
                pdfmetrics.registerFont(TTFont(name, path))
            return name
        except Exception as e:
            logger.warning("Failed to register font %s from %s: %s", name, path, e)
    else:
        logger.warning("Font %r not found", family)
    logger.warning("Falling back to %s", DEFAULT_FONT)
    return DEFAULT_FONT

"""Rebuild a multi-page PDF from OCR pages.

Each OCR page becomes a PDF page of the same physical size; every text run
is drawn at its first word's top-left corner with a font size taken from
that word's height. Uses ReportLab's canvas in invariant mode so identical
input always produces identical bytes.
"""

from __future__ import annotations

import io
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from scanrebuild.analysis.model import AnalysisResult, Page
from scanrebuild.layout import (
    DEFAULT_FONT,
    DEFAULT_VARIANCE,
    MIN_TEXT_HEIGHT,
    POINTS_PER_UNIT,
    estimate_font_size,
    merge_words_to_runs,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextPlacement:
    """Text anchored by its top-left corner, in points from the page's top-left."""

    text: str
    x: float
    y: float
    font_size: float


@dataclass(frozen=True)
class PageLayout:
    page_number: int
    width_pt: float
    height_pt: float
    placements: Tuple[TextPlacement, ...] = ()


@dataclass
class SynthesisResult:
    pdf: Optional[bytes]
    page_numbers: List[int] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)


def layout_page(
    page: Page,
    variance: float = DEFAULT_VARIANCE,
    font_name: str = DEFAULT_FONT,
    min_text_height: float = MIN_TEXT_HEIGHT,
) -> PageLayout:
    """Compute page size and text placements for one OCR page.

    Doxygen:
    - @param page: OCR page in physical units.
    - @param variance: Line-merge tolerance in physical units.
    - @param font_name: Registered font used to measure each string.
    - @param min_text_height: Fallback height for degenerate polygons.
    - @return: Layout in points; placements follow run order.
    - @throws ValueError: If the page size is not positive and finite, or a run anchor is not finite.
    """
    width_pt = page.width * POINTS_PER_UNIT
    height_pt = page.height * POINTS_PER_UNIT
    if not (math.isfinite(width_pt) and math.isfinite(height_pt) and width_pt > 0 and height_pt > 0):
        raise ValueError(f"Page {page.page_number} has invalid size {page.width}x{page.height}")

    placements: List[TextPlacement] = []
    for run in merge_words_to_runs(page.words, variance):
        text = run.text
        size = estimate_font_size(run, min_height=min_text_height)
        # raises for unregistered fonts before anything is drawn
        pdfmetrics.stringWidth(text, font_name, size)
        anchor = run.top_left
        if not (math.isfinite(anchor.x) and math.isfinite(anchor.y)):
            raise ValueError(f"Page {page.page_number} has a non-finite anchor for {text!r}")
        placements.append(TextPlacement(
            text=text,
            x=anchor.x * POINTS_PER_UNIT,
            y=anchor.y * POINTS_PER_UNIT,
            font_size=size,
        ))
    return PageLayout(page_number=page.page_number, width_pt=width_pt, height_pt=height_pt, placements=tuple(placements))


def render_pdf(layouts: Sequence[PageLayout], font_name: str = DEFAULT_FONT) -> bytes:
    """Draw the layouts as consecutive PDF pages and return the document bytes."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, invariant=1)
    for layout in layouts:
        c.setPageSize((layout.width_pt, layout.height_pt))
        for p in layout.placements:
            c.setFont(font_name, p.font_size)
            # PDF origin is bottom-left and drawString positions the baseline
            c.drawString(p.x, layout.height_pt - p.y - p.font_size, p.text)
        c.showPage()
    c.save()
    return buf.getvalue()


def synthesize_pdf(
    result: AnalysisResult,
    variance: float = DEFAULT_VARIANCE,
    font_name: str = DEFAULT_FONT,
    min_text_height: float = MIN_TEXT_HEIGHT,
    max_workers: int = 4,
) -> SynthesisResult:
    """Lay out all pages concurrently and assemble them in ``result.pages`` order.

    A page whose layout or drawing raises is logged and skipped; other pages
    continue. ``pdf`` is None when no page could be rendered.
    """
    pages = list(result.pages)

    def _safe_layout(page: Page) -> Optional[PageLayout]:
        try:
            return layout_page(page, variance, font_name, min_text_height)
        except Exception as e:
            logger.error("Skipping page %d: %s", page.page_number, e)
            return None

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        layouts = list(pool.map(_safe_layout, pages))

    out = SynthesisResult(pdf=None)
    kept: List[PageLayout] = []
    for page, layout in zip(pages, layouts):
        if layout is None:
            out.skipped_pages.append(page.page_number)
        else:
            kept.append(layout)
            out.page_numbers.append(page.page_number)

    if not kept:
        return out
    try:
        out.pdf = render_pdf(kept, font_name)
        return out
    except Exception as e:
        logger.error("Rendering failed, retrying page by page: %s", e)

    # isolate the pages that cannot be drawn and rebuild without them
    drawable: List[PageLayout] = []
    for layout in kept:
        try:
            render_pdf([layout], font_name)
        except Exception as e:
            logger.error("Skipping page %d: %s", layout.page_number, e)
            out.skipped_pages.append(layout.page_number)
            out.page_numbers.remove(layout.page_number)
            continue
        drawable.append(layout)
    out.skipped_pages.sort(key=[p.page_number for p in pages].index)
    if drawable:
        out.pdf = render_pdf(drawable, font_name)
    return out

"""Output artifacts derived from an OCR analysis.

Exposes:
- Text exports: one UTF-8 text artifact per page that has paragraphs
- PDF synthesis: OCR pages rebuilt with words at their source positions
"""

from .txt import group_paragraphs_by_page, page_text, text_artifact_key, text_artifacts
from .pdf_io import PageLayout, SynthesisResult, TextPlacement, layout_page, render_pdf, synthesize_pdf

__all__ = [
    "group_paragraphs_by_page",
    "page_text",
    "text_artifact_key",
    "text_artifacts",
    "PageLayout",
    "SynthesisResult",
    "TextPlacement",
    "layout_page",
    "render_pdf",
    "synthesize_pdf",
]

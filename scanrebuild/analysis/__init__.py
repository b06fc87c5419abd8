"""OCR analysis model and the local Tesseract provider.

The pipeline only depends on the ``Analyzer`` protocol
(``analyze(bytes) -> AnalysisResult``); ``TesseractAnalyzer`` is the
bundled implementation.
"""

from .model import AnalysisResult, Page, Paragraph, Point, Word
from .reader import (
    AnalysisError,
    Analyzer,
    TesseractAnalyzer,
    build_dataframe_from_tesseract,
    load_page_images,
    page_from_dataframe,
    paragraphs_from_dataframe,
    preprocess_image_for_ocr,
)

__all__ = [
    "AnalysisResult",
    "Page",
    "Paragraph",
    "Point",
    "Word",
    "AnalysisError",
    "Analyzer",
    "TesseractAnalyzer",
    "build_dataframe_from_tesseract",
    "load_page_images",
    "page_from_dataframe",
    "paragraphs_from_dataframe",
    "preprocess_image_for_ocr",
]

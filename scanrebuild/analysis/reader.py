"""Local OCR provider built on top of pytesseract and OpenCV.

This module provides:
- Decoding raw document bytes into page images (PDF via pdf2image, TIFF frames via PIL).
- Preprocessing images for OCR.
- Building a cleaned DataFrame from pytesseract output.
- Converting Tesseract boxes into the physical-unit ``AnalysisResult`` model.

All public functions include Doxygen-style documentation tags.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Dict, List, Optional, Protocol

import cv2
import numpy as np
import pandas as pd
import pytesseract
from PIL import Image, ImageSequence, UnidentifiedImageError

from .model import AnalysisResult, Page, Paragraph, Point, Word

logger = logging.getLogger(__name__)

_TESSERACT_LEVEL_WORD = 5


class AnalysisError(RuntimeError):
    """The OCR step failed; fatal for the current document."""


class Analyzer(Protocol):
    def analyze(self, data: bytes) -> AnalysisResult:
        ...


def load_page_images(data: bytes, poppler_path: Optional[str] = None) -> List[Image.Image]:
    """Decode raw document bytes into one RGB image per page.

    Doxygen:
    - @param data: Raw bytes of an image (any PIL format) or a scanned PDF.
    - @param poppler_path: Optional Poppler binary directory for pdf2image.
    - @return: List of RGB PIL images in page order.
    - @throws AnalysisError: If the bytes cannot be decoded.
    """
    if not data:
        raise AnalysisError("Empty document")

    if data[:5] == b"%PDF-":
        try:
            from pdf2image import convert_from_bytes
        except ImportError as e:
            raise AnalysisError(
                "pdf2image is required to process scanned PDFs. Please install it (`pip install pdf2image`) "
                "and ensure Poppler is installed and configured."
            ) from e
        try:
            return [img.convert("RGB") for img in convert_from_bytes(data, poppler_path=poppler_path)]
        except Exception as e:
            raise AnalysisError(f"Failed to rasterize PDF: {e}") from e

    try:
        img = Image.open(io.BytesIO(data))
        frames = [frame.copy() for frame in ImageSequence.Iterator(img)]
    except (UnidentifiedImageError, OSError) as e:
        raise AnalysisError(f"Failed to load image: {e}") from e

    pages: List[Image.Image] = []
    for frame in frames:
        rgb = frame.convert("RGB")
        # keep the scan resolution so physical size can be derived later
        rgb.info["dpi"] = frame.info.get("dpi") or img.info.get("dpi")
        pages.append(rgb)
    return pages


def image_dpi(img: Image.Image, default_dpi: int = 300) -> float:
    """Horizontal resolution from image metadata, or ``default_dpi``."""
    dpi = img.info.get("dpi")
    try:
        value = float(dpi[0]) if dpi else 0.0
    except (TypeError, ValueError, IndexError):
        value = 0.0
    # PIL reports 1 or 72 for images saved without real resolution data
    return value if value > 72.0 else float(default_dpi)


def preprocess_image_for_ocr(img_bgr: np.ndarray) -> np.ndarray:
    """Preprocess a BGR image to improve OCR accuracy.

    Doxygen:
    - @param img_bgr: Input image in BGR format.
    - @return: Preprocessed BGR image.
    """
    gray = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2GRAY)
    gray = cv2.bilateralFilter(gray, d=7, sigmaColor=50, sigmaSpace=50)
    th = cv2.adaptiveThreshold(gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
                               cv2.THRESH_BINARY, 31, 10)
    th = cv2.medianBlur(th, 3)
    return cv2.cvtColor(th, cv2.COLOR_GRAY2BGR)


def build_dataframe_from_tesseract(data: Dict[str, Any]) -> pd.DataFrame:
    """Create and clean a DataFrame from pytesseract.image_to_data output.

    Doxygen:
    - @param data: Dict returned by `pytesseract.image_to_data(..., output_type=Output.DICT)`.
    - @return: Word rows with positive confidence and non-empty text, in Tesseract order.
    """
    df = pd.DataFrame(data)
    if df.empty:
        return df
    if 'level' in df.columns:
        df = df[df['level'] == _TESSERACT_LEVEL_WORD].copy()
    df['conf'] = pd.to_numeric(df['conf'], errors='coerce').fillna(-1)
    df = df[df['conf'] > 0]
    df['text'] = df['text'].fillna('').astype(str).str.strip()
    df = df[df['text'] != '']
    return df.reset_index(drop=True)


def page_from_dataframe(df: pd.DataFrame, page_number: int, width_px: int, height_px: int, dpi: float) -> Page:
    """Convert pixel word boxes of one page into a physical-unit ``Page``.

    Doxygen:
    - @param df: DataFrame produced by `build_dataframe_from_tesseract`.
    - @param page_number: 1-based page number.
    - @param width_px: Page image width in pixels.
    - @param height_px: Page image height in pixels.
    - @param dpi: Pixels per inch used to convert to inches.
    - @return: Page whose words keep Tesseract reading order.
    """
    words: List[Word] = []
    for row in df.itertuples(index=False):
        left = row.left / dpi
        top = row.top / dpi
        right = (row.left + row.width) / dpi
        bottom = (row.top + row.height) / dpi
        words.append(Word(
            text=str(row.text),
            polygon=(Point(left, top), Point(right, top), Point(right, bottom), Point(left, bottom)),
        ))
    return Page(page_number=page_number, width=width_px / dpi, height=height_px / dpi, words=tuple(words))


def paragraphs_from_dataframe(df: pd.DataFrame, page_number: int) -> List[Paragraph]:
    """Group word rows into paragraphs by Tesseract ``(block_num, par_num)``.

    Lines inside a paragraph are joined with a newline, words with a space.
    """
    if df.empty:
        return []
    paragraphs: List[Paragraph] = []
    for _, g in df.groupby(['block_num', 'par_num'], sort=False):
        lines = [' '.join(line['text'].tolist()) for _, line in g.groupby('line_num', sort=False)]
        paragraphs.append(Paragraph(text='\n'.join(lines), page_number=page_number))
    return paragraphs


class TesseractAnalyzer:
    """OCR collaborator that produces an ``AnalysisResult`` from raw bytes."""

    def __init__(
        self,
        lang: str = 'eng',
        conf_threshold: int = 30,
        ocr_mode: str = 'auto',
        default_dpi: int = 300,
        poppler_path: Optional[str] = None,
    ) -> None:
        self.lang = lang
        self.conf_threshold = conf_threshold
        self.ocr_mode = ocr_mode
        self.default_dpi = default_dpi
        self.poppler_path = poppler_path

    def _ocr_page(self, img: Image.Image) -> pd.DataFrame:
        img_bgr = cv2.cvtColor(np.array(img), cv2.COLOR_RGB2BGR)
        ocr_input = img_bgr if self.ocr_mode == 'raw' else preprocess_image_for_ocr(img_bgr)
        data = pytesseract.image_to_data(
            cv2.cvtColor(ocr_input, cv2.COLOR_BGR2RGB),
            lang=self.lang,
            output_type=pytesseract.Output.DICT,
        )
        df = build_dataframe_from_tesseract(data)
        if df.empty:
            return df
        return df[df['conf'] >= self.conf_threshold].reset_index(drop=True)

    def analyze(self, data: bytes) -> AnalysisResult:
        """Run OCR on every page of the document.

        Doxygen:
        - @param data: Raw document bytes.
        - @return: Immutable analysis result.
        - @throws AnalysisError: If decoding or Tesseract fails.
        """
        images = load_page_images(data, poppler_path=self.poppler_path)
        pages: List[Page] = []
        paragraphs: List[Paragraph] = []
        for index, img in enumerate(images, start=1):
            dpi = image_dpi(img, self.default_dpi)
            try:
                df = self._ocr_page(img)
            except pytesseract.TesseractError as e:
                raise AnalysisError(f"Tesseract failed on page {index}: {e}") from e
            except pytesseract.TesseractNotFoundError as e:
                raise AnalysisError(str(e)) from e
            pages.append(page_from_dataframe(df, index, img.width, img.height, dpi))
            paragraphs.extend(paragraphs_from_dataframe(df, index))
            logger.info("OCR page %d: %d words, dpi=%.0f", index, len(pages[-1].words), dpi)
        return AnalysisResult(pages=tuple(pages), paragraphs=tuple(paragraphs))

"""
Entry point and facade for the scan → text exports + PDF pipeline.

Packages:
- scanrebuild.analysis: OCR data model and Tesseract analyzer
- scanrebuild.layout: Line merging and font size estimation
- scanrebuild.docs: Per-page text exports and PDF synthesis
- scanrebuild.storage: Local and in-memory blob stores
- scanrebuild.pipeline: High-level orchestration (`process_document`)
"""

from __future__ import annotations

import json
import logging
import os

from scanrebuild.analysis import AnalysisError, AnalysisResult, TesseractAnalyzer
from scanrebuild.config import configure_dependencies, configure_logging, load_settings
from scanrebuild.docs import group_paragraphs_by_page, synthesize_pdf, text_artifacts
from scanrebuild.layout import estimate_font_size, merge_words_to_runs
from scanrebuild.pipeline import ProcessingReport, process_analysis, process_blob, process_document
from scanrebuild.storage import LocalBlobStore, StorageError

__all__ = [
    "AnalysisResult",
    "TesseractAnalyzer",
    "LocalBlobStore",
    "group_paragraphs_by_page",
    "merge_words_to_runs",
    "estimate_font_size",
    "synthesize_pdf",
    "text_artifacts",
    "process_analysis",
    "process_blob",
    "process_document",
]


def _print_report(report: ProcessingReport, out_dir: str, container: str) -> None:
    for key in report.written:
        print(f"written: {os.path.join(out_dir, container, key)}")
    for failure in report.failures:
        print(f"failed: {failure.key}: {failure.error}")
    if report.skipped_pages:
        print(f"Skipped pages: {', '.join(str(n) for n in report.skipped_pages)}")
    print(f"Artifacts written: {len(report.written)}/{report.attempted}")


def _cli() -> None:
    """CLI for rebuilding a scanned document.

    --file / -f: Path to input image or scanned PDF (used for naming with --analysis)
    --analysis / -a: Path to a cached analysis JSON; skips OCR
    --blob / -b: Key of a document in the source container of the local store
    --out-dir / -o: Root directory of the local blob store (default: output)
    --container: Output container (default from settings: parsed-text)
    --source-container: Source container for --blob (default from settings: scanned-images)
    --variance: Line merge tolerance in inches (default from settings: 0.02)
    --lang: Tesseract languages (default from settings: eng)
    --conf: OCR confidence threshold (default from settings: 30)
    --ocr-mode: 'auto' for scanned docs, 'raw' for clean images
    --dpi: Resolution assumed when the image carries none
    --font: PDF font family or TrueType file name
    --config: Path to settings.json
    --verbose / -v: Debug logging
    """
    import argparse

    parser = argparse.ArgumentParser(description="Export per-page text and rebuild a positioned-text PDF from a scanned document.")
    parser.add_argument("--file", "-f", type=str, help="Path to input image or scanned PDF")
    parser.add_argument("--analysis", "-a", type=str, help="Path to a cached analysis JSON (skips OCR)")
    parser.add_argument("--blob", "-b", type=str, help="Key of a document in the source container of the local store")
    parser.add_argument("--out-dir", "-o", type=str, default="output", help="Root directory of the local blob store (default: output)")
    parser.add_argument("--container", type=str, help="Output container name")
    parser.add_argument("--source-container", type=str, help="Source container name for --blob")
    parser.add_argument("--variance", type=float, help="Line merge tolerance in physical units")
    parser.add_argument("--lang", type=str, help="Tesseract languages")
    parser.add_argument("--conf", type=int, help="Confidence threshold for OCR words")
    parser.add_argument("--ocr-mode", type=str, choices=["auto", "raw"], help="OCR preprocessing mode")
    parser.add_argument("--dpi", type=int, help="Resolution assumed when the image has none")
    parser.add_argument("--font", type=str, help="PDF font family or TrueType file name")
    parser.add_argument("--config", type=str, help="Path to settings.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(str(e))
        raise SystemExit(2)

    overrides = {
        "output_container": args.container,
        "source_container": args.source_container,
        "line_merge_variance": args.variance,
        "ocr_lang": args.lang,
        "ocr_conf_threshold": args.conf,
        "ocr_mode": args.ocr_mode,
        "default_dpi": args.dpi,
        "font_family": args.font,
    }
    for attr, value in overrides.items():
        if value is not None:
            setattr(settings, attr, value)
    try:
        settings.validate()
    except ValueError as e:
        print(str(e))
        raise SystemExit(2)

    if not args.file and not args.analysis and not args.blob:
        print("Please provide --file (image or scanned PDF), --blob (key in the source container) or --analysis (cached analysis JSON).")
        print("Examples:\n  python main.py --file scans/invoice.jpg\n  python main.py --blob invoice.jpg --out-dir output\n  python main.py --analysis invoice.json --out-dir output")
        raise SystemExit(2)

    store = LocalBlobStore(args.out_dir)
    name = args.file or args.blob or args.analysis

    try:
        if args.analysis:
            with open(args.analysis, "r", encoding="utf-8") as f:
                result = AnalysisResult.from_dict(json.load(f))
            report = process_analysis(result, name, store, settings)
        else:
            if args.file and not os.path.exists(args.file):
                print(f"File not found: {args.file}")
                raise SystemExit(2)
            poppler_path = configure_dependencies(settings)
            analyzer = TesseractAnalyzer(
                lang=settings.ocr_lang,
                conf_threshold=settings.ocr_conf_threshold,
                ocr_mode=settings.ocr_mode,
                default_dpi=settings.default_dpi,
                poppler_path=poppler_path,
            )
            if args.file:
                with open(args.file, "rb") as f:
                    data = f.read()
                report = process_document(data, name, analyzer, store, settings)
            else:
                report = process_blob(args.blob, analyzer, store, settings)
    except (AnalysisError, ValueError, KeyError) as e:
        print(f"Analysis failed: {e}")
        raise SystemExit(2)
    except StorageError as e:
        print(f"Storage error: {e}")
        raise SystemExit(1)

    _print_report(report, store.root, settings.output_container)
    if not report.succeeded:
        raise SystemExit(1)


if __name__ == "__main__":
    _cli()

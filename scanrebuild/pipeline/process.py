"""High-level pipeline: OCR analysis → text exports + rebuilt PDF → blob store.

The text branch and the PDF branch read the same immutable
``AnalysisResult`` and run concurrently. Every artifact write is attempted
independently; the returned report says which ones landed.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from scanrebuild.analysis import AnalysisError, AnalysisResult, Analyzer
from scanrebuild.config import Settings
from scanrebuild.docs import synthesize_pdf, text_artifacts
from scanrebuild.layout import resolve_font
from scanrebuild.storage import BlobStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactFailure:
    key: str
    error: str


@dataclass
class ProcessingReport:
    name: str
    attempted: int = 0
    written: List[str] = field(default_factory=list)
    failures: List[ArtifactFailure] = field(default_factory=list)
    skipped_pages: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures and len(self.written) == self.attempted


# (attempted, written keys, failures, skipped page numbers)
BranchResult = Tuple[int, List[str], List[ArtifactFailure], List[int]]


def base_name(name: str) -> str:
    """``scans/doc.jpg`` → ``doc``."""
    base = os.path.basename(name.replace("\\", "/"))
    return os.path.splitext(base)[0] or base


def _write_all(store: BlobStore, container: str, artifacts: List[Tuple[str, bytes]]) -> Tuple[List[str], List[ArtifactFailure]]:
    written: List[str] = []
    failures: List[ArtifactFailure] = []
    for key, data in artifacts:
        try:
            store.put(container, key, data, overwrite=True)
        except Exception as e:
            logger.error("Error writing to blob %s: %s", key, e)
            failures.append(ArtifactFailure(key=key, error=str(e)))
            continue
        logger.info("Wrote %s/%s (%d bytes)", container, key, len(data))
        written.append(key)
    return written, failures


def _text_branch(result: AnalysisResult, doc_name: str, store: BlobStore, settings: Settings) -> BranchResult:
    artifacts = text_artifacts(doc_name, result.paragraphs)
    written, failures = _write_all(store, settings.output_container, artifacts)
    return len(artifacts), written, failures, []


def _pdf_branch(result: AnalysisResult, doc_name: str, store: BlobStore, settings: Settings) -> BranchResult:
    font_name = resolve_font(settings.font_family, settings.font_path)
    synthesis = synthesize_pdf(
        result,
        variance=settings.line_merge_variance,
        font_name=font_name,
        min_text_height=settings.min_text_height,
        max_workers=settings.max_workers,
    )
    if synthesis.pdf is None:
        logger.warning("No pages rendered for %s; PDF not written", doc_name)
        return 0, [], [], synthesis.skipped_pages
    written, failures = _write_all(store, settings.output_container, [(f"{doc_name}.pdf", synthesis.pdf)])
    return 1, written, failures, synthesis.skipped_pages


def process_analysis(
    result: AnalysisResult,
    name: str,
    store: BlobStore,
    settings: Optional[Settings] = None,
) -> ProcessingReport:
    """Write text exports and the rebuilt PDF for an existing analysis.

    Doxygen:
    - @param result: OCR analysis of the document.
    - @param name: Source document name; its base name prefixes every key.
    - @param store: Destination blob store.
    - @param settings: Pipeline settings (defaults when None).
    - @return: Report of attempted and written artifacts.
    - @throws StorageError: If the output container cannot be created.
    """
    settings = settings or Settings()
    doc_name = base_name(name)
    store.ensure_container(settings.output_container)

    report = ProcessingReport(name=name)
    branches: List[BranchResult] = []
    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            (f"{doc_name}-page-*.txt", pool.submit(_text_branch, result, doc_name, store, settings)),
            (f"{doc_name}.pdf", pool.submit(_pdf_branch, result, doc_name, store, settings)),
        ]
        for key, future in futures:
            try:
                branches.append(future.result())
            except Exception as e:
                logger.error("Failed to produce %s: %s", key, e)
                branches.append((1, [], [ArtifactFailure(key=key, error=str(e))], []))

    for attempted, written, failures, skipped in branches:
        report.attempted += attempted
        report.written.extend(written)
        report.failures.extend(failures)
        report.skipped_pages.extend(skipped)

    logger.info("Processed %s: %d/%d artifacts written", name, len(report.written), report.attempted)
    return report


def process_document(
    data: bytes,
    name: str,
    analyzer: Analyzer,
    store: BlobStore,
    settings: Optional[Settings] = None,
) -> ProcessingReport:
    """Run OCR on ``data`` and write all derived artifacts.

    An analysis failure is fatal: it is raised as ``AnalysisError`` and
    nothing is written.
    """
    try:
        result = analyzer.analyze(data)
    except AnalysisError:
        raise
    except Exception as e:
        raise AnalysisError(f"Analysis of {name} failed: {e}") from e
    logger.info("Analyzed %s: %d pages, %d paragraphs", name, len(result.pages), len(result.paragraphs))
    return process_analysis(result, name, store, settings)


def process_blob(
    key: str,
    analyzer: Analyzer,
    store: BlobStore,
    settings: Optional[Settings] = None,
) -> ProcessingReport:
    """Read ``key`` from the source container and process it.

    Doxygen:
    - @param key: Blob key of the scanned document in ``settings.source_container``.
    - @param analyzer: OCR collaborator.
    - @param store: Store holding both the source and the output container.
    - @param settings: Pipeline settings (defaults when None).
    - @return: Report of attempted and written artifacts.
    - @throws StorageError: If the source blob cannot be read.
    """
    settings = settings or Settings()
    data = store.get(settings.source_container, key)
    return process_document(data, key, analyzer, store, settings)

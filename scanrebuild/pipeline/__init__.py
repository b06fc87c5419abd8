"""High-level pipeline orchestration for OCR → text exports + PDF."""

from .process import (
    ArtifactFailure,
    ProcessingReport,
    base_name,
    process_analysis,
    process_blob,
    process_document,
)

__all__ = [
    "ArtifactFailure",
    "ProcessingReport",
    "base_name",
    "process_analysis",
    "process_blob",
    "process_document",
]

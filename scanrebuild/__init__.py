"""Rebuild text exports and a positioned-text PDF from scanned-document OCR.

Packages:
- scanrebuild.analysis: OCR data model and the Tesseract analyzer
- scanrebuild.layout: Line merging and font size estimation
- scanrebuild.docs: Text exports and PDF synthesis
- scanrebuild.storage: Blob stores for artifacts
- scanrebuild.pipeline: End-to-end orchestration (`process_document`)
"""

__version__ = "0.1.0"

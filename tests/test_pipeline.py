import io

import pytest
from pypdf import PdfReader

from scanrebuild.analysis import AnalysisError, AnalysisResult, Page, Paragraph, Point, Word
from scanrebuild.config import Settings
from scanrebuild.pipeline import base_name, process_analysis, process_blob, process_document
from scanrebuild.storage import LocalBlobStore, MemoryBlobStore, StorageError


class _StubAnalyzer:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    def analyze(self, data):
        self.calls += 1
        return self.result


class _BrokenAnalyzer:
    def analyze(self, data):
        raise ConnectionError("service unavailable")


class _FlakyStore(MemoryBlobStore):
    def __init__(self, failing_keys):
        super().__init__()
        self.failing_keys = set(failing_keys)

    def put(self, container, key, data, overwrite=True):
        if key in self.failing_keys:
            raise StorageError(f"boom: {key}")
        super().put(container, key, data, overwrite)


def _word(text, x, y, h=0.2):
    return Word(text=text, polygon=(Point(x, y), Point(x + 1, y), Point(x + 1, y + h), Point(x, y + h)))


def _two_page_result():
    return AnalysisResult(
        pages=(
            Page(page_number=1, width=8.5, height=11, words=(_word('Hello', 1, 1), _word('World', 1, 2))),
            Page(page_number=2, width=8.5, height=11, words=()),
        ),
        paragraphs=(Paragraph('Hello', 1), Paragraph('World', 1)),
    )


def test_base_name():
    assert base_name('scans/doc.jpg') == 'doc'
    assert base_name('doc') == 'doc'
    assert base_name('C:\\in\\scan.v2.png') == 'scan.v2'


def test_process_document_end_to_end():
    store = MemoryBlobStore()
    settings = Settings(output_container='out')
    analyzer = _StubAnalyzer(_two_page_result())
    report = process_document(b'raw', 'doc.jpg', analyzer, store, settings)

    assert analyzer.calls == 1
    assert report.succeeded
    assert report.attempted == 2
    assert sorted(report.written) == ['doc-page-1.txt', 'doc.pdf']
    assert store.get('out', 'doc-page-1.txt') == b'Hello\nWorld\n'
    assert not store.exists('out', 'doc-page-2.txt')

    reader = PdfReader(io.BytesIO(store.get('out', 'doc.pdf')))
    assert len(reader.pages) == 2
    text = reader.pages[0].extract_text()
    assert 'Hello' in text and 'World' in text


def test_process_document_analysis_failure_writes_nothing():
    store = MemoryBlobStore()
    with pytest.raises(AnalysisError):
        process_document(b'raw', 'doc.jpg', _BrokenAnalyzer(), store, Settings())
    assert store.blobs == {}


def test_write_failure_does_not_stop_other_artifacts():
    result = AnalysisResult(
        pages=(Page(page_number=1, width=8.5, height=11, words=(_word('a', 1, 1),)),),
        paragraphs=(Paragraph('a', 1), Paragraph('b', 2), Paragraph('c', 3)),
    )
    store = _FlakyStore(['doc-page-2.txt'])
    report = process_analysis(result, 'doc.png', store, Settings(output_container='out'))

    assert not report.succeeded
    assert report.attempted == 4
    assert sorted(report.written) == ['doc-page-1.txt', 'doc-page-3.txt', 'doc.pdf']
    assert [f.key for f in report.failures] == ['doc-page-2.txt']
    assert store.get('out', 'doc-page-3.txt') == b'c\n'


def test_process_analysis_reports_skipped_pages():
    result = AnalysisResult(pages=(
        Page(page_number=1, width=0, height=11, words=(_word('bad', 1, 1),)),
        Page(page_number=2, width=8.5, height=11, words=(_word('good', 1, 1),)),
    ))
    store = MemoryBlobStore()
    report = process_analysis(result, 'doc', store, Settings())
    assert report.skipped_pages == [1]
    assert report.written == ['doc.pdf']


def test_process_analysis_without_renderable_pages():
    report = process_analysis(AnalysisResult(), 'empty.jpg', MemoryBlobStore(), Settings())
    assert report.attempted == 0
    assert report.written == []
    assert report.succeeded


def test_pipeline_is_idempotent(tmp_path):
    store = LocalBlobStore(str(tmp_path))
    settings = Settings(output_container='out')
    result = _two_page_result()

    process_analysis(result, 'doc.jpg', store, settings)
    first = {k: store.get('out', k) for k in ('doc-page-1.txt', 'doc.pdf')}
    process_analysis(result, 'doc.jpg', store, settings)
    second = {k: store.get('out', k) for k in ('doc-page-1.txt', 'doc.pdf')}
    assert first == second


def test_pdf_failure_still_returns_report(monkeypatch):
    from scanrebuild.pipeline import process

    def _broken_synthesis(*args, **kwargs):
        raise RuntimeError('glyph missing')

    monkeypatch.setattr(process, 'synthesize_pdf', _broken_synthesis)
    store = MemoryBlobStore()
    report = process_analysis(_two_page_result(), 'doc.jpg', store, Settings(output_container='out'))

    assert not report.succeeded
    assert report.attempted == 2
    assert report.written == ['doc-page-1.txt']
    assert [f.key for f in report.failures] == ['doc.pdf']
    assert 'glyph missing' in report.failures[0].error
    assert store.get('out', 'doc-page-1.txt') == b'Hello\nWorld\n'
    assert not store.exists('out', 'doc.pdf')


def test_process_blob_reads_source_container():
    store = MemoryBlobStore()
    store.ensure_container('incoming')
    store.put('incoming', 'scans/doc.jpg', b'raw')
    analyzer = _StubAnalyzer(_two_page_result())
    settings = Settings(output_container='out', source_container='incoming')

    report = process_blob('scans/doc.jpg', analyzer, store, settings)

    assert analyzer.calls == 1
    assert report.succeeded
    assert sorted(report.written) == ['doc-page-1.txt', 'doc.pdf']


def test_process_blob_missing_source_raises():
    store = MemoryBlobStore()
    store.ensure_container('scanned-images')
    with pytest.raises(StorageError):
        process_blob('absent.jpg', _StubAnalyzer(_two_page_result()), store, Settings())

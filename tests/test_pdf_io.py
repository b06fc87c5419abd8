import io

import pytest
from pypdf import PdfReader

from scanrebuild.analysis.model import AnalysisResult, Page, Point, Word
from scanrebuild.docs.pdf_io import layout_page, render_pdf, synthesize_pdf


def _word(text, x, y, h=0.2, w=1.0):
    return Word(text=text, polygon=(Point(x, y), Point(x + w, y), Point(x + w, y + h), Point(x, y + h)))


def _invoice_page(number=1):
    return Page(page_number=number, width=8.5, height=11, words=(_word('Invoice', 1, 1),))


def test_layout_page_invoice():
    layout = layout_page(_invoice_page())
    assert layout.width_pt == pytest.approx(612)
    assert layout.height_pt == pytest.approx(792)
    assert len(layout.placements) == 1
    p = layout.placements[0]
    assert p.text == 'Invoice'
    assert (p.x, p.y) == (pytest.approx(72), pytest.approx(72))
    assert p.font_size == pytest.approx(14.4)


def test_layout_page_merges_runs_and_clamps_degenerate_height():
    page = Page(page_number=1, width=8.5, height=11, words=(
        _word('Total', 1, 5.0, h=0.0),
        _word('due', 2.2, 5.01),
        _word('42.00', 1, 6.0),
    ))
    layout = layout_page(page)
    assert [p.text for p in layout.placements] == ['Total due', '42.00']
    assert layout.placements[0].font_size == pytest.approx(7.2)


def test_layout_page_rejects_empty_size():
    with pytest.raises(ValueError):
        layout_page(Page(page_number=1, width=0, height=11))


def test_render_pdf_page_size_and_text():
    pdf = render_pdf([layout_page(_invoice_page())])
    reader = PdfReader(io.BytesIO(pdf))
    assert len(reader.pages) == 1
    page = reader.pages[0]
    assert float(page.mediabox.width) == pytest.approx(612)
    assert float(page.mediabox.height) == pytest.approx(792)
    assert 'Invoice' in page.extract_text()
    assert b'14.4 Tf' in page.get_contents().get_data()


def test_synthesize_pdf_keeps_source_order_with_gaps():
    pages = (
        Page(page_number=5, width=4, height=6, words=(_word('five', 1, 1),)),
        Page(page_number=2, width=8.5, height=11, words=(_word('two', 1, 1),)),
        Page(page_number=9, width=5, height=5, words=()),
    )
    out = synthesize_pdf(AnalysisResult(pages=pages), max_workers=3)
    assert out.page_numbers == [5, 2, 9]
    assert out.skipped_pages == []
    reader = PdfReader(io.BytesIO(out.pdf))
    assert [float(p.mediabox.width) for p in reader.pages] == [pytest.approx(288), pytest.approx(612), pytest.approx(360)]
    assert 'five' in reader.pages[0].extract_text()
    assert 'two' in reader.pages[1].extract_text()


def test_synthesize_pdf_skips_failing_page():
    pages = (_invoice_page(1), Page(page_number=2, width=0, height=0, words=()), _invoice_page(3))
    out = synthesize_pdf(AnalysisResult(pages=pages))
    assert out.page_numbers == [1, 3]
    assert out.skipped_pages == [2]
    assert len(PdfReader(io.BytesIO(out.pdf)).pages) == 2


def test_synthesize_pdf_without_pages():
    out = synthesize_pdf(AnalysisResult())
    assert out.pdf is None


def test_synthesize_pdf_is_deterministic():
    result = AnalysisResult(pages=(_invoice_page(1), _invoice_page(2)))
    assert synthesize_pdf(result).pdf == synthesize_pdf(result).pdf


def test_layout_page_nan_word_height_gets_fallback_size():
    word = Word(text='Smudge', polygon=(Point(1, 1), Point(2, 1), Point(2, float('nan')), Point(1, float('nan'))))
    layout = layout_page(Page(page_number=1, width=8.5, height=11, words=(word,)))
    assert layout.placements[0].font_size == pytest.approx(7.2)


def test_layout_page_rejects_non_finite_size_and_anchor():
    with pytest.raises(ValueError):
        layout_page(Page(page_number=1, width=float('nan'), height=11))
    with pytest.raises(ValueError):
        layout_page(Page(page_number=1, width=8.5, height=float('inf')))
    with pytest.raises(ValueError):
        layout_page(Page(page_number=1, width=8.5, height=11, words=(_word('x', float('nan'), 1),)))


def test_synthesize_pdf_skips_nan_sized_page():
    pages = (Page(page_number=1, width=float('nan'), height=11, words=(_word('lost', 1, 1),)), _invoice_page(2))
    out = synthesize_pdf(AnalysisResult(pages=pages))
    assert out.skipped_pages == [1]
    assert out.page_numbers == [2]
    reader = PdfReader(io.BytesIO(out.pdf))
    assert len(reader.pages) == 1
    assert 'Invoice' in reader.pages[0].extract_text()


def test_synthesize_pdf_isolates_page_that_fails_to_draw(monkeypatch):
    from scanrebuild.docs import pdf_io

    real_render = pdf_io.render_pdf

    def _render(layouts, font_name='Helvetica'):
        if any(layout.page_number == 2 for layout in layouts):
            raise ValueError('cannot draw page 2')
        return real_render(layouts, font_name)

    monkeypatch.setattr(pdf_io, 'render_pdf', _render)
    pages = (_invoice_page(1), _invoice_page(2), _invoice_page(3))
    out = synthesize_pdf(AnalysisResult(pages=pages))
    assert out.page_numbers == [1, 3]
    assert out.skipped_pages == [2]
    assert len(PdfReader(io.BytesIO(out.pdf)).pages) == 2


def test_synthesize_pdf_no_drawable_pages(monkeypatch):
    from scanrebuild.docs import pdf_io

    def _render(layouts, font_name='Helvetica'):
        raise ValueError('cannot draw')

    monkeypatch.setattr(pdf_io, 'render_pdf', _render)
    out = synthesize_pdf(AnalysisResult(pages=(_invoice_page(1), _invoice_page(2))))
    assert out.pdf is None
    assert out.page_numbers == []
    assert out.skipped_pages == [1, 2]

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from scanrebuild.analysis.model import Paragraph


def group_paragraphs_by_page(paragraphs: Iterable[Paragraph]) -> Dict[int, List[str]]:
    """Stable grouping of paragraph texts by page number.

    Keys appear in first-seen order and are exactly the page numbers present;
    a number with no matching OCR page still gets its group.
    """
    groups: Dict[int, List[str]] = {}
    for para in paragraphs:
        groups.setdefault(para.page_number, []).append(para.text)
    return groups


def page_text(texts: Iterable[str]) -> str:
    return "".join(f"{t}\n" for t in texts)


def text_artifact_key(base_name: str, position: int) -> str:
    return f"{base_name}-page-{position}.txt"


def text_artifacts(base_name: str, paragraphs: Iterable[Paragraph]) -> List[Tuple[str, bytes]]:
    """Build ``(key, utf-8 bytes)`` pairs, one per page that has paragraphs.

    Pages are numbered by their position among the grouped pages (1-based),
    not by the OCR page number: paragraphs only on OCR pages 1 and 3 give
    ``-page-1`` and ``-page-2``.
    """
    groups = group_paragraphs_by_page(paragraphs)
    return [
        (text_artifact_key(base_name, i), page_text(texts).encode("utf-8"))
        for i, texts in enumerate(groups.values(), start=1)
    ]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Word:
    """A recognized word and its quadrilateral.

    Polygon order: top-left, top-right, bottom-right, bottom-left.
    """

    text: str
    polygon: Tuple[Point, Point, Point, Point]

    def __post_init__(self) -> None:
        if len(self.polygon) != 4:
            raise ValueError(f"Word polygon must have exactly 4 points, got {len(self.polygon)}")
        object.__setattr__(self, "polygon", tuple(self.polygon))

    @property
    def top_left(self) -> Point:
        return self.polygon[0]

    @property
    def text_height(self) -> float:
        # bottom-left minus top-left; degenerate OCR geometry can make this <= 0
        return self.polygon[3].y - self.polygon[0].y


@dataclass(frozen=True)
class Page:
    page_number: int
    width: float
    height: float
    words: Tuple[Word, ...] = field(default_factory=tuple)
    unit: str = "inch"

    def __post_init__(self) -> None:
        object.__setattr__(self, "words", tuple(self.words))


@dataclass(frozen=True)
class Paragraph:
    text: str
    page_number: int


def _polygon_from_flat(values: Sequence[float]) -> Tuple[Point, ...]:
    if len(values) != 8:
        raise ValueError(f"Flat polygon must have 8 coordinates, got {len(values)}")
    return tuple(Point(float(values[i]), float(values[i + 1])) for i in range(0, 8, 2))


def _polygon_to_flat(polygon: Iterable[Point]) -> List[float]:
    out: List[float] = []
    for p in polygon:
        out.extend([p.x, p.y])
    return out


@dataclass(frozen=True)
class AnalysisResult:
    pages: Tuple[Page, ...] = field(default_factory=tuple)
    paragraphs: Tuple[Paragraph, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pages", tuple(self.pages))
        object.__setattr__(self, "paragraphs", tuple(self.paragraphs))

    def page(self, page_number: int) -> Optional[Page]:
        for p in self.pages:
            if p.page_number == page_number:
                return p
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        """Build a result from an ``analyzeResult``-shaped mapping.

        Pages carry ``pageNumber``, ``width``, ``height``, ``unit`` and
        ``words`` (``content`` + flat 8-value ``polygon``). Paragraphs carry
        ``content`` and ``boundingRegions[0].pageNumber``.
        Only the ``inch`` page unit is accepted.
        """
        pages: List[Page] = []
        for p in data.get("pages") or []:
            unit = str(p.get("unit") or "inch")
            if unit != "inch":
                raise ValueError(f"Unsupported page unit {unit!r} on page {p.get('pageNumber')}; only 'inch' is supported")
            words = tuple(
                Word(text=str(w.get("content", "")), polygon=_polygon_from_flat(w["polygon"]))
                for w in p.get("words") or []
            )
            pages.append(Page(
                page_number=int(p["pageNumber"]),
                width=float(p.get("width", 0.0)),
                height=float(p.get("height", 0.0)),
                words=words,
                unit=unit,
            ))
        paragraphs: List[Paragraph] = []
        for para in data.get("paragraphs") or []:
            regions = para.get("boundingRegions") or []
            if not regions:
                raise ValueError("Paragraph has no bounding regions")
            paragraphs.append(Paragraph(text=str(para.get("content") or ""), page_number=int(regions[0]["pageNumber"])))
        return cls(pages=tuple(pages), paragraphs=tuple(paragraphs))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages": [
                {
                    "pageNumber": p.page_number,
                    "width": p.width,
                    "height": p.height,
                    "unit": p.unit,
                    "words": [{"content": w.text, "polygon": _polygon_to_flat(w.polygon)} for w in p.words],
                }
                for p in self.pages
            ],
            "paragraphs": [
                {"content": para.text, "boundingRegions": [{"pageNumber": para.page_number}]}
                for para in self.paragraphs
            ],
        }

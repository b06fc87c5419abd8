"""Group OCR words into visual text runs by vertical position."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from scanrebuild.analysis.model import Point, Word

DEFAULT_VARIANCE = 0.02


@dataclass(frozen=True)
class TextRun:
    words: Tuple[Word, ...]

    @property
    def first(self) -> Word:
        return self.words[0]

    @property
    def top_left(self) -> Point:
        return self.words[0].top_left

    @property
    def text(self) -> str:
        return " ".join(w.text for w in self.words)


def merge_words_to_runs(words: Sequence[Word], variance: float = DEFAULT_VARIANCE) -> List[TextRun]:
    """Greedy single-pass grouping of consecutive co-linear words.

    A word joins the current run when its top-left Y differs from the
    previous word's by less than ``variance``; otherwise it starts a new run.
    Words are taken in the given order and never re-sorted, so an OCR order
    that is not line-major is reflected as-is in the runs.

    Doxygen:
    - @param words: Page words in OCR emission order.
    - @param variance: Vertical tolerance in physical units (must be > 0).
    - @return: Runs covering every word exactly once, in input order.
    - @throws ValueError: If ``variance`` is not positive.
    """
    if variance <= 0:
        raise ValueError(f"variance must be positive, got {variance}")

    runs: List[TextRun] = []
    current: List[Word] = []
    for w in words:
        if current and abs(w.top_left.y - current[-1].top_left.y) < variance:
            current.append(w)
            continue
        if current:
            runs.append(TextRun(words=tuple(current)))
        current = [w]
    if current:
        runs.append(TextRun(words=tuple(current)))
    return runs

"""Gather the numbers of one logical row that PDF reflow split over several lines."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Optional, Sequence

from .classifier import classify, mask_regions
from .models import ClassifiedLine, LineRole
from .numeral import DEFAULT_FORMAT, NumberFormat, extract_numbers

__all__ = ["DEFAULT_MAX_LOOKAHEAD", "Collected", "collect"]

# A logical row has been seen wrapped over at most six physical lines
DEFAULT_MAX_LOOKAHEAD = 6

LineClassifier = Callable[[str], ClassifiedLine]


@dataclass(slots=True)
class Collected:
    numbers: List[float] = field(default_factory=list)
    lines_consumed: int = 1

    def satisfies(self, target_count: int) -> bool:
        return len(self.numbers) >= target_count


def collect(
    lines: Sequence[str],
    start_index: int,
    target_count: int,
    known_regions: Sequence[str] = (),
    *,
    max_lookahead: int = DEFAULT_MAX_LOOKAHEAD,
    fmt: NumberFormat = DEFAULT_FORMAT,
    classify_next: Optional[LineClassifier] = None,
    skip_leading: int = 0,
) -> Collected:
    """Collect up to ``target_count`` numbers starting at ``lines[start_index]``.

    Following lines are absorbed only while they classify as continuations;
    a new row start or a noise line ends the row. At most ``max_lookahead``
    extra lines are examined. A short result is returned as-is, callers check
    ``satisfies`` before assigning fields by position.

    ``skip_leading`` drops that many leading tokens of the first line (the day
    column of a realisasi row, the index and name of a branch row) before
    reading numbers.
    """
    if max_lookahead < 0:
        raise ValueError("max_lookahead must not be negative")
    if not 0 <= start_index < len(lines):
        raise IndexError(f"start_index {start_index} outside 0..{len(lines) - 1}")

    if classify_next is None:
        classify_next = partial(classify, known_regions=known_regions, in_progress=True)

    first = lines[start_index]
    if skip_leading:
        first = " ".join(first.split()[skip_leading:])
    if known_regions:
        first = mask_regions(first, known_regions)
    numbers = extract_numbers(first, fmt)
    consumed = 1

    position = start_index + 1
    while (
        len(numbers) < target_count
        and position < len(lines)
        and consumed <= max_lookahead
    ):
        candidate = classify_next(lines[position])
        if candidate.role is not LineRole.CONTINUATION:
            break
        text = mask_regions(candidate.text, known_regions) if known_regions else candidate.text
        numbers.extend(extract_numbers(text, fmt))
        consumed += 1
        position += 1

    return Collected(numbers=numbers, lines_consumed=consumed)

"""Row classification for reports uploaded as spreadsheets.

Spreadsheet exports keep one logical row per sheet row, so there is no
continuation handling here; roles are decided from fixed column offsets
instead of line patterns.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional, Sequence

from .classifier import (
    MAX_BRANCH_INDEX,
    NATIONAL_MARKERS,
    REGION_MARKERS,
    TOTAL_ROW_MARKERS,
    find_region,
    is_noise,
    parse_day,
    starts_with_phrase,
    strip_trailing_region,
)
from .models import ClassifiedLine, LineRole
from .numeral import DEFAULT_FORMAT, NumberFormat, normalize

__all__ = [
    "SheetLayout",
    "DEFAULT_LAYOUT",
    "DAILY_LAYOUT",
    "cell_text",
    "cell_number",
    "value_block",
    "trailing_block",
    "classify_row",
    "classify_daily_row",
]


@dataclass(frozen=True, slots=True)
class SheetLayout:
    """Column offsets (zero based) of the label and value blocks."""

    index_col: int = 0
    name_col: int = 1
    first_value_col: int = 2

    def __post_init__(self) -> None:
        if min(self.index_col, self.name_col, self.first_value_col) < 0:
            raise ValueError("column offsets must not be negative")
        if self.first_value_col <= max(self.index_col, self.name_col):
            raise ValueError("value columns must start after the label columns")


DEFAULT_LAYOUT = SheetLayout()
DAILY_LAYOUT = SheetLayout(index_col=0, name_col=0, first_value_col=1)


def cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return " ".join(str(value).split())


def cell_number(value: Any, fmt: NumberFormat = DEFAULT_FORMAT) -> Optional[float]:
    """Numeric value of a cell; blanks and text that is not a number give None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    text = cell_text(value)
    if not text:
        return None
    return normalize(text, fmt)


def _parse_block(cells: Sequence[Any], fmt: NumberFormat) -> Optional[List[float]]:
    numbers: List[float] = []
    for value in cells:
        number = cell_number(value, fmt)
        if number is None:
            return None
        numbers.append(number)
    return numbers


def value_block(
    cells: Sequence[Any],
    width: int,
    layout: SheetLayout = DEFAULT_LAYOUT,
    fmt: NumberFormat = DEFAULT_FORMAT,
) -> Optional[List[float]]:
    """Read ``width`` values starting at the first value column.

    Cells keep their positions: a blank or unreadable cell inside the block
    makes the whole block None instead of shifting later columns left.
    """
    block = list(cells[layout.first_value_col:layout.first_value_col + width])
    if len(block) < width:
        return None
    return _parse_block(block, fmt)


def trailing_block(
    cells: Sequence[Any],
    width: int,
    layout: SheetLayout = DEFAULT_LAYOUT,
    fmt: NumberFormat = DEFAULT_FORMAT,
) -> Optional[List[float]]:
    """Read the last ``width`` values of a row, ignoring empty trailing columns."""
    end = len(cells)
    while end > layout.first_value_col and not cell_text(cells[end - 1]):
        end -= 1
    start = end - width
    if start < layout.first_value_col:
        return None
    return _parse_block(cells[start:end], fmt)


def _cell(cells: Sequence[Any], column: int) -> Any:
    return cells[column] if column < len(cells) else None


def _label(cells: Sequence[Any], layout: SheetLayout) -> str:
    parts = [cell_text(value) for value in cells[: layout.first_value_col]]
    return " ".join(part for part in parts if part)


def _index(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return int(number) if math.isfinite(number) and number.is_integer() else None
    text = cell_text(value).rstrip(".")
    return int(text) if text.isdigit() else None


def classify_row(
    cells: Sequence[Any],
    known_regions: Sequence[str],
    layout: SheetLayout = DEFAULT_LAYOUT,
    *,
    current_region: Optional[str] = None,
) -> ClassifiedLine:
    """Label one spreadsheet row of an NPL / KOL2 report."""
    label = _label(cells, layout)
    upper = label.upper()

    if is_noise(label):
        return ClassifiedLine(text=label, role=LineRole.NOISE)
    if starts_with_phrase(upper, NATIONAL_MARKERS):
        return ClassifiedLine(text=label, role=LineRole.NATIONAL_TOTAL)
    if starts_with_phrase(upper, REGION_MARKERS):
        found = find_region(label, known_regions)
        if not found:
            return ClassifiedLine(text=label, role=LineRole.NOISE)
        return ClassifiedLine(text=label, role=LineRole.REGION_TOTAL, region=found[0])

    index = _index(_cell(cells, layout.index_col))
    name = cell_text(_cell(cells, layout.name_col))
    if index is not None and 1 <= index <= MAX_BRANCH_INDEX and any(ch.isalpha() for ch in name):
        name = strip_trailing_region(name, known_regions)
        return ClassifiedLine(
            text=label,
            role=LineRole.LEAF_CANDIDATE,
            region=current_region,
            index=index,
            name=name,
        )
    return ClassifiedLine(text=label, role=LineRole.NOISE)


def classify_daily_row(cells: Sequence[Any], layout: SheetLayout = DAILY_LAYOUT) -> ClassifiedLine:
    """Label one spreadsheet row of a realisasi report."""
    first = _cell(cells, layout.index_col)
    label = _label(cells, layout)
    if isinstance(first, (datetime, date)):
        return ClassifiedLine(text=label, role=LineRole.DAILY_ROW, day=first.day)

    # A bare "Total" label cell is a totals row here, not a header
    if starts_with_phrase(label.upper(), TOTAL_ROW_MARKERS):
        return ClassifiedLine(text=label, role=LineRole.TOTAL_ROW)
    if is_noise(label):
        return ClassifiedLine(text=label, role=LineRole.NOISE)

    index = _index(first)
    day = index if index is not None else parse_day(cell_text(first))
    if day is not None and 1 <= day <= 31:
        return ClassifiedLine(text=label, role=LineRole.DAILY_ROW, day=day)
    return ClassifiedLine(text=label, role=LineRole.NOISE)

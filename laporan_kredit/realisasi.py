"""Daily realisasi (loan disbursement) table extraction."""

from __future__ import annotations

from functools import partial
from typing import Any, Dict, Iterable, Optional, Sequence

from .builder import DEFAULT_OPTIONS, ExtractOptions
from .classifier import classify_daily
from .collector import collect
from .logging import get_logger
from .models import DailyRecord, LineRole, MonthlyTotals, RealisasiTable
from .sheet import DAILY_LAYOUT, SheetLayout, classify_daily_row, trailing_block

logger = get_logger(__name__)

__all__ = [
    "PERIOD_COLUMNS",
    "TOTAL_ROW_WIDTH",
    "CATEGORY_SLOTS",
    "daily_record",
    "monthly_totals_from_row",
    "build_realisasi_table",
    "build_realisasi_table_from_rows",
]

# Each period (two months back, last month, this month) prints seven columns,
# the last of which is the period total. The current period is always printed last.
PERIOD_COLUMNS = 7
PERIOD_COUNT = 3
TOTAL_ROW_WIDTH = PERIOD_COLUMNS * PERIOD_COUNT
CATEGORY_SLOTS = {"kur": 0, "kumk": 1, "sme_swadana": 2}


def daily_record(day: int, numbers: Sequence[float]) -> Optional[DailyRecord]:
    """Read the current period from the last seven numbers of a day row."""
    if len(numbers) < PERIOD_COLUMNS:
        return None
    current = numbers[-PERIOD_COLUMNS:]
    return DailyRecord(
        day=day,
        kur=current[CATEGORY_SLOTS["kur"]],
        kumk=current[CATEGORY_SLOTS["kumk"]],
        sme_swadana=current[CATEGORY_SLOTS["sme_swadana"]],
        total=current[-1],
    )


def monthly_totals_from_row(numbers: Sequence[float]) -> Optional[MonthlyTotals]:
    if len(numbers) < TOTAL_ROW_WIDTH:
        return None
    return MonthlyTotals(
        prior_prior=numbers[PERIOD_COLUMNS - 1],
        prior=numbers[2 * PERIOD_COLUMNS - 1],
        current=numbers[3 * PERIOD_COLUMNS - 1],
    )


class _DailyAccumulator:
    def __init__(self) -> None:
        self.days: Dict[int, DailyRecord] = {}
        self.totals: Optional[MonthlyTotals] = None

    def add_day(self, day: Optional[int], numbers: Sequence[float], text: str) -> None:
        if day is None:
            return
        record = daily_record(day, numbers)
        if record is None:
            logger.debug("daily_row_short", day=day, found=len(numbers), line=text)
            return
        if day in self.days:
            logger.info("daily_row_replaced", day=day)
        self.days[day] = record

    def add_totals(self, numbers: Sequence[float], text: str) -> None:
        totals = monthly_totals_from_row(numbers)
        if totals is None:
            logger.debug("total_row_short", found=len(numbers), line=text)
            return
        self.totals = totals

    def finish(self) -> RealisasiTable:
        days = [self.days[day] for day in sorted(self.days)]
        totals = self.totals or MonthlyTotals()
        if self.totals is None or totals.current is None:
            totals.current = sum(record.total for record in days)
        return RealisasiTable(days=days, monthly_totals=totals)


def build_realisasi_table(
    lines: Sequence[str],
    options: Optional[ExtractOptions] = None,
) -> RealisasiTable:
    """Build the daily table from lines of extracted PDF text."""
    opts = options or DEFAULT_OPTIONS
    acc = _DailyAccumulator()
    classify_next = partial(classify_daily, in_progress=True)

    position = 0
    while position < len(lines):
        line = classify_daily(lines[position])
        if line.role is LineRole.TOTAL_ROW:
            collected = collect(
                lines,
                position,
                TOTAL_ROW_WIDTH,
                max_lookahead=opts.max_lookahead,
                fmt=opts.fmt,
                classify_next=classify_next,
            )
            acc.add_totals(collected.numbers, line.text)
        elif line.role is LineRole.DAILY_ROW:
            collected = collect(
                lines,
                position,
                TOTAL_ROW_WIDTH,
                max_lookahead=opts.max_lookahead,
                fmt=opts.fmt,
                classify_next=classify_next,
                skip_leading=1,
            )
            acc.add_day(line.day, collected.numbers, line.text)
        else:
            position += 1
            continue
        position += collected.lines_consumed

    table = acc.finish()
    logger.info(
        "realisasi_table_built",
        source="text",
        lines=len(lines),
        days=len(table.days),
        totals_row=acc.totals is not None,
    )
    return table


def build_realisasi_table_from_rows(
    rows: Iterable[Sequence[Any]],
    layout: SheetLayout = DAILY_LAYOUT,
    options: Optional[ExtractOptions] = None,
) -> RealisasiTable:
    """Build the daily table from spreadsheet rows."""
    opts = options or DEFAULT_OPTIONS
    acc = _DailyAccumulator()

    count = 0
    for cells in rows:
        count += 1
        line = classify_daily_row(cells, layout)
        if line.role is LineRole.TOTAL_ROW:
            width = TOTAL_ROW_WIDTH
        elif line.role is LineRole.DAILY_ROW:
            width = PERIOD_COLUMNS
        else:
            continue
        block = trailing_block(cells, width, layout, opts.fmt)
        if block is None:
            logger.warning("sheet_row_incomplete", row=count, label=line.text, role=line.role.value)
            continue
        if line.role is LineRole.TOTAL_ROW:
            acc.add_totals(block, line.text)
        else:
            acc.add_day(line.day, block, line.text)

    table = acc.finish()
    logger.info(
        "realisasi_table_built",
        source="sheet",
        rows=count,
        days=len(table.days),
        totals_row=acc.totals is not None,
    )
    return table

"""Assemble the nation, kanwil and cabang table of NPL and KOL2 reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from statistics import fmean
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .classifier import classify
from .collector import DEFAULT_MAX_LOOKAHEAD, collect
from .logging import get_logger
from .models import (
    LEDGER_WIDTH,
    BranchRecord,
    ClassifiedLine,
    LedgerRecord,
    LineRole,
    NplTable,
    PeriodFigures,
    RegionRecord,
)
from .numeral import DEFAULT_FORMAT, NumberFormat
from .sheet import DEFAULT_LAYOUT, SheetLayout, classify_row, value_block

logger = get_logger(__name__)

__all__ = [
    "ExtractOptions",
    "Seeking",
    "InRegion",
    "CollectedRow",
    "step",
    "build_npl_table",
    "build_npl_table_from_rows",
    "aggregate_ledgers",
]

# Leaf rows carry their row number in front of the twelve ledger fields
LEAF_WIDTH = LEDGER_WIDTH + 1

LEDGER_ROLES = frozenset(
    {
        LineRole.NATIONAL_TOTAL,
        LineRole.REGION_TOTAL,
        LineRole.LEAF_CANDIDATE,
    }
)


@dataclass(frozen=True, slots=True)
class ExtractOptions:
    fmt: NumberFormat = DEFAULT_FORMAT
    max_lookahead: int = DEFAULT_MAX_LOOKAHEAD

    def __post_init__(self) -> None:
        if self.max_lookahead < 1:
            raise ValueError("max_lookahead must be at least 1")


DEFAULT_OPTIONS = ExtractOptions()


@dataclass(frozen=True, slots=True)
class Seeking:
    """No kanwil total seen yet; leaf rows are dropped."""

    @property
    def region(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class InRegion:
    name: str

    @property
    def region(self) -> str:
        return self.name


BuildState = Union[Seeking, InRegion]


@dataclass(slots=True)
class CollectedRow:
    line: ClassifiedLine
    numbers: List[float] = field(default_factory=list)


Handler = Callable[[BuildState, CollectedRow, NplTable], BuildState]


def _on_national_total(state: BuildState, row: CollectedRow, table: NplTable) -> BuildState:
    if len(row.numbers) < LEDGER_WIDTH:
        logger.debug("national_total_short", found=len(row.numbers), line=row.line.text)
        return state
    table.national_total = LedgerRecord.from_numbers(row.numbers[:LEDGER_WIDTH])
    return state


def _on_region_total(state: BuildState, row: CollectedRow, table: NplTable) -> BuildState:
    name = row.line.region
    if not name:
        return state
    next_state = InRegion(name)
    if len(row.numbers) < LEDGER_WIDTH:
        logger.debug("region_total_short", region=name, found=len(row.numbers))
        return next_state

    ledger = LedgerRecord.from_numbers(row.numbers[:LEDGER_WIDTH])
    for existing in table.regions:
        if existing.name == name:
            existing.ledger = ledger
            break
    else:
        table.regions.append(RegionRecord(name=name, ledger=ledger))
    return next_state


def _on_leaf(state: BuildState, row: CollectedRow, table: NplTable) -> BuildState:
    if not isinstance(state, InRegion):
        logger.debug("leaf_without_region", line=row.line.text)
        return state
    if len(row.numbers) < LEAF_WIDTH:
        logger.debug("leaf_short", region=state.name, found=len(row.numbers), line=row.line.text)
        return state

    name = row.line.name or ""
    if not name:
        logger.debug("leaf_without_name", region=state.name, line=row.line.text)
        return state
    table.branches.append(
        BranchRecord(
            region=state.name,
            name=name,
            ledger=LedgerRecord.from_numbers(row.numbers[1:LEAF_WIDTH]),
        )
    )
    return state


HANDLERS: Dict[LineRole, Handler] = {
    LineRole.NATIONAL_TOTAL: _on_national_total,
    LineRole.REGION_TOTAL: _on_region_total,
    LineRole.LEAF_CANDIDATE: _on_leaf,
}


def step(state: BuildState, row: CollectedRow, table: NplTable) -> BuildState:
    """Fold one collected row into ``table`` and return the next state."""
    handler = HANDLERS.get(row.line.role)
    if handler is None:
        return state
    return handler(state, row, table)


def aggregate_ledgers(ledgers: Sequence[LedgerRecord]) -> LedgerRecord:
    """Sum principal fields and take the arithmetic mean of percentage fields.

    The mean is unweighted.
    """
    if not ledgers:
        raise ValueError("at least one ledger is required")

    def combine(periods: List[PeriodFigures]) -> PeriodFigures:
        values: Dict[str, float] = {}
        for name in PeriodFigures.PRINCIPAL_FIELDS:
            values[name] = sum(getattr(period, name) for period in periods)
        for name in PeriodFigures.PERCENT_FIELDS:
            values[name] = fmean(getattr(period, name) for period in periods)
        return PeriodFigures(**values)

    return LedgerRecord(
        current=combine([ledger.current for ledger in ledgers]),
        prior=combine([ledger.prior for ledger in ledgers]),
    )


def _finish(table: NplTable) -> NplTable:
    known = set(table.region_names())
    orphans: Dict[str, List[LedgerRecord]] = {}
    for branch in table.branches:
        if branch.region not in known:
            orphans.setdefault(branch.region, []).append(branch.ledger)
    for name, ledgers in orphans.items():
        logger.info("region_total_derived", region=name, branches=len(ledgers))
        table.regions.append(RegionRecord(name=name, ledger=aggregate_ledgers(ledgers)))

    if table.national_total is None and table.regions:
        logger.info("national_total_derived", regions=len(table.regions))
        table.national_total = aggregate_ledgers([region.ledger for region in table.regions])
    return table


def build_npl_table(
    lines: Sequence[str],
    known_regions: Sequence[str],
    options: Optional[ExtractOptions] = None,
) -> NplTable:
    """Build the NPL / KOL2 table from lines of extracted PDF text."""
    opts = options or DEFAULT_OPTIONS
    table = NplTable()
    state: BuildState = Seeking()

    position = 0
    while position < len(lines):
        line = classify(lines[position], known_regions, current_region=state.region)
        if line.role not in LEDGER_ROLES:
            position += 1
            continue
        # Leaf rows are read past their index and name; the index is slot 0
        is_leaf = line.role is LineRole.LEAF_CANDIDATE
        collected = collect(
            lines,
            position,
            LEDGER_WIDTH,
            known_regions,
            max_lookahead=opts.max_lookahead,
            fmt=opts.fmt,
            skip_leading=(line.value_offset or 0) if is_leaf else 0,
        )
        numbers = collected.numbers
        if is_leaf:
            numbers = [float(line.index or 0)] + numbers
        state = step(state, CollectedRow(line=line, numbers=numbers), table)
        position += collected.lines_consumed

    table = _finish(table)
    logger.info(
        "npl_table_built",
        source="text",
        lines=len(lines),
        regions=len(table.regions),
        branches=len(table.branches),
        national=table.national_total is not None,
    )
    return table


def build_npl_table_from_rows(
    rows: Iterable[Sequence[Any]],
    known_regions: Sequence[str],
    layout: SheetLayout = DEFAULT_LAYOUT,
    options: Optional[ExtractOptions] = None,
) -> NplTable:
    """Build the NPL / KOL2 table from spreadsheet rows."""
    opts = options or DEFAULT_OPTIONS
    table = NplTable()
    state: BuildState = Seeking()

    count = 0
    for cells in rows:
        count += 1
        line = classify_row(cells, known_regions, layout, current_region=state.region)
        if line.role not in LEDGER_ROLES:
            continue
        block = value_block(cells, LEDGER_WIDTH, layout, opts.fmt)
        if block is None:
            # Region rows still switch state; the handlers skip the short row
            logger.warning("sheet_row_incomplete", row=count, label=line.text)
        numbers = block or []
        if line.role is LineRole.LEAF_CANDIDATE:
            numbers = [float(line.index or 0)] + numbers
        state = step(state, CollectedRow(line=line, numbers=numbers), table)

    table = _finish(table)
    logger.info(
        "npl_table_built",
        source="sheet",
        rows=count,
        regions=len(table.regions),
        branches=len(table.branches),
        national=table.national_total is not None,
    )
    return table

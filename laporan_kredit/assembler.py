"""Wrap extracted tables into the artifacts the dashboards read."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .builder import aggregate_ledgers
from .models import (
    LEDGER_TABLE_KINDS,
    REPORT_KINDS,
    ArtifactMetadata,
    BranchRecord,
    DailyRecord,
    LedgerRecord,
    MonthlyTotals,
    NplTable,
    PeriodFigures,
    RealisasiTable,
    RegionRecord,
    UploadSummary,
)

__all__ = [
    "DEFAULT_SPLIT",
    "PublishedArtifact",
    "assemble",
    "summarize",
    "dumps",
    "format_upload_date",
    "split_ledger",
    "placeholder_npl_table",
    "placeholder_realisasi_table",
]

Table = Union[NplTable, RealisasiTable]

# KUMK / KUR share used when a source only reports the combined total
DEFAULT_SPLIT: Tuple[float, float] = (0.55, 0.45)


def dumps(payload: Any) -> bytes:
    """Serialize deterministically; identical input always gives identical bytes."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def format_upload_date(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class PublishedArtifact:
    kind: str
    metadata: ArtifactMetadata
    table: Table

    @property
    def parsed_name(self) -> str:
        return f"{self.kind}_parsed.json"

    @property
    def metadata_name(self) -> str:
        return f"{self.kind}_metadata.json"

    def files(self) -> Dict[str, bytes]:
        """Payloads keyed by object name, table first and provenance last."""
        return {
            self.parsed_name: dumps(self.table.to_dict()),
            self.metadata_name: dumps(self.metadata.to_dict()),
        }

    def summary(self) -> UploadSummary:
        return summarize(self.table)


def _check_kind(kind: str, table: Table) -> None:
    if kind not in REPORT_KINDS:
        raise ValueError(f"Unknown report kind '{kind}'")
    expected = NplTable if kind in LEDGER_TABLE_KINDS else RealisasiTable
    if not isinstance(table, expected):
        raise TypeError(f"{kind} expects {expected.__name__}, got {type(table).__name__}")


def assemble(
    kind: str,
    table: Table,
    filename: str,
    file_size: int,
    now: Optional[datetime] = None,
) -> PublishedArtifact:
    _check_kind(kind, table)
    if file_size < 0:
        raise ValueError("file_size must not be negative")
    moment = now or datetime.now(timezone.utc)
    metadata = ArtifactMetadata(
        filename=filename,
        upload_date=format_upload_date(moment),
        file_size=file_size,
    )
    return PublishedArtifact(kind=kind, metadata=metadata, table=table)


def summarize(table: Table) -> UploadSummary:
    if isinstance(table, NplTable):
        return UploadSummary(region_count=len(table.regions), branch_count=len(table.branches))
    return UploadSummary(day_count=len(table.days))


def _check_split(ratio: Tuple[float, float]) -> None:
    if len(ratio) != 2 or min(ratio) < 0 or not math.isclose(sum(ratio), 1.0, abs_tol=1e-9):
        raise ValueError("split ratio must be two non-negative shares summing to 1")


def _split_period(total: float, total_percent: float, ratio: Tuple[float, float]) -> PeriodFigures:
    kumk_share, kur_share = ratio
    return PeriodFigures(
        kumk=total * kumk_share,
        kumk_percent=total_percent * kumk_share,
        kur=total * kur_share,
        kur_percent=total_percent * kur_share,
        total=total,
        total_percent=total_percent,
    )


def split_ledger(
    total: float,
    total_percent: float,
    ratio: Tuple[float, float] = DEFAULT_SPLIT,
    prior_total: float = 0.0,
    prior_percent: float = 0.0,
) -> LedgerRecord:
    """Approximate KUMK / KUR figures from a combined total.

    Amounts and percentages are pro-rated with the same fixed shares. This is
    an estimate for sources that only carry totals, not a recomputation.
    """
    _check_split(ratio)
    return LedgerRecord(
        current=_split_period(total, total_percent, ratio),
        prior=_split_period(prior_total, prior_percent, ratio),
    )


def placeholder_npl_table(
    branches_by_region: Mapping[str, Sequence[Tuple[str, float, float]]],
    ratio: Tuple[float, float] = DEFAULT_SPLIT,
) -> NplTable:
    """Build the table shown before the first real upload.

    ``branches_by_region`` maps a kanwil name to ``(branch, total, total_percent)``
    entries. Region and national figures are aggregated from the branches.
    """
    _check_split(ratio)
    table = NplTable()
    for region, entries in branches_by_region.items():
        ledgers = []
        for name, total, total_percent in entries:
            ledger = split_ledger(float(total), float(total_percent), ratio)
            table.branches.append(BranchRecord(region=region, name=name, ledger=ledger))
            ledgers.append(ledger)
        if ledgers:
            table.regions.append(RegionRecord(name=region, ledger=aggregate_ledgers(ledgers)))
    if table.regions:
        table.national_total = aggregate_ledgers([region.ledger for region in table.regions])
    return table


def placeholder_realisasi_table(
    days: Sequence[Tuple[int, float, float, float, float]],
    prior_prior: Optional[float] = None,
    prior: Optional[float] = None,
) -> RealisasiTable:
    """Build the daily table shown before the first real upload.

    ``days`` holds ``(day, kur, kumk, sme_swadana, total)`` entries. The current
    month total is the sum of the day totals.
    """
    records: Dict[int, DailyRecord] = {}
    for day, kur, kumk, sme_swadana, total in days:
        if not 1 <= int(day) <= 31:
            raise ValueError(f"day {day} outside 1..31")
        records[int(day)] = DailyRecord(
            day=int(day),
            kur=float(kur),
            kumk=float(kumk),
            sme_swadana=float(sme_swadana),
            total=float(total),
        )
    ordered = [records[day] for day in sorted(records)]
    return RealisasiTable(
        days=ordered,
        monthly_totals=MonthlyTotals(
            prior_prior=prior_prior,
            prior=prior,
            current=sum(record.total for record in ordered),
        ),
    )

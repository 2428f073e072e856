"""Domain models for extracted NPL / KOL2 / realisasi tables."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

REPORT_KINDS = ("npl", "kol2", "realisasi")
LEDGER_TABLE_KINDS = ("npl", "kol2")

LEDGER_WIDTH = 12
PERIOD_WIDTH = 6


@dataclass(frozen=True, slots=True)
class NumericToken:
    """One lexical unit and the single normalization rule applied to it."""

    raw: str
    value: Optional[float]
    rule: str


class LineRole(str, enum.Enum):
    NOISE = "noise"
    NATIONAL_TOTAL = "national_total"
    REGION_TOTAL = "region_total"
    LEAF_CANDIDATE = "leaf_candidate"
    CONTINUATION = "continuation"
    TOTAL_ROW = "total_row"
    DAILY_ROW = "daily_row"


ROW_START_ROLES = frozenset(
    {
        LineRole.NATIONAL_TOTAL,
        LineRole.REGION_TOTAL,
        LineRole.LEAF_CANDIDATE,
        LineRole.TOTAL_ROW,
        LineRole.DAILY_ROW,
    }
)


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    text: str
    role: LineRole
    region: Optional[str] = None
    index: Optional[int] = None
    name: Optional[str] = None
    day: Optional[int] = None
    # Token position where the row's values start (leaf rows of text dumps)
    value_offset: Optional[int] = None

    @property
    def starts_row(self) -> bool:
        return self.role in ROW_START_ROLES


@dataclass(slots=True)
class PeriodFigures:
    """Principal and percentage for KUMK, KUR and their total in one period."""

    kumk: float = 0.0
    kumk_percent: float = 0.0
    kur: float = 0.0
    kur_percent: float = 0.0
    total: float = 0.0
    total_percent: float = 0.0

    PRINCIPAL_FIELDS = ("kumk", "kur", "total")
    PERCENT_FIELDS = ("kumk_percent", "kur_percent", "total_percent")

    @classmethod
    def from_numbers(cls, numbers: Sequence[float]) -> "PeriodFigures":
        if len(numbers) < PERIOD_WIDTH:
            raise ValueError(f"expected {PERIOD_WIDTH} numbers, got {len(numbers)}")
        return cls(*(float(value) for value in numbers[:PERIOD_WIDTH]))

    def to_dict(self, suffix: str = "") -> Dict[str, float]:
        return {
            f"kumk{suffix}": self.kumk,
            f"kumkPercent{suffix}": self.kumk_percent,
            f"kur{suffix}": self.kur,
            f"kurPercent{suffix}": self.kur_percent,
            f"total{suffix}": self.total,
            f"totalPercent{suffix}": self.total_percent,
        }


@dataclass(slots=True)
class LedgerRecord:
    """Fixed 12-field record: six current-period fields, then six prior-period ones."""

    current: PeriodFigures = field(default_factory=PeriodFigures)
    prior: PeriodFigures = field(default_factory=PeriodFigures)

    @classmethod
    def from_numbers(cls, numbers: Sequence[float]) -> "LedgerRecord":
        if len(numbers) < LEDGER_WIDTH:
            raise ValueError(f"expected {LEDGER_WIDTH} numbers, got {len(numbers)}")
        return cls(
            current=PeriodFigures.from_numbers(numbers[:PERIOD_WIDTH]),
            prior=PeriodFigures.from_numbers(numbers[PERIOD_WIDTH:LEDGER_WIDTH]),
        )

    def to_dict(self) -> Dict[str, float]:
        payload = self.current.to_dict()
        payload.update(self.prior.to_dict("Prior"))
        return payload


@dataclass(slots=True)
class RegionRecord:
    name: str
    ledger: LedgerRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, **self.ledger.to_dict()}


@dataclass(slots=True)
class BranchRecord:
    region: str
    name: str
    ledger: LedgerRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"kanwil": self.region, "name": self.name, **self.ledger.to_dict()}


@dataclass(slots=True)
class NplTable:
    """Nation → kanwil → cabang table shared by the NPL and KOL2 reports."""

    national_total: Optional[LedgerRecord] = None
    regions: List[RegionRecord] = field(default_factory=list)
    branches: List[BranchRecord] = field(default_factory=list)

    def region_names(self) -> List[str]:
        return [region.name for region in self.regions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNasional": self.national_total.to_dict() if self.national_total else None,
            "kanwilData": [region.to_dict() for region in self.regions],
            "cabangData": [branch.to_dict() for branch in self.branches],
        }


@dataclass(slots=True)
class DailyRecord:
    day: int
    kur: float
    kumk: float
    sme_swadana: float
    total: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day,
            "kur": self.kur,
            "kumk": self.kumk,
            "smeSwadana": self.sme_swadana,
            "total": self.total,
        }


@dataclass(slots=True)
class MonthlyTotals:
    prior_prior: Optional[float] = None
    prior: Optional[float] = None
    current: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"priorPrior": self.prior_prior, "prior": self.prior, "current": self.current}


@dataclass(slots=True)
class RealisasiTable:
    days: List[DailyRecord] = field(default_factory=list)
    monthly_totals: MonthlyTotals = field(default_factory=MonthlyTotals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dailyData": [day.to_dict() for day in self.days],
            "monthlyTotals": self.monthly_totals.to_dict(),
        }


@dataclass(slots=True)
class ArtifactMetadata:
    filename: str
    upload_date: str
    file_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "uploadDate": self.upload_date, "fileSize": self.file_size}


@dataclass(slots=True)
class UploadSummary:
    region_count: int = 0
    branch_count: int = 0
    day_count: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "regionCount": self.region_count,
            "branchCount": self.branch_count,
            "dayCount": self.day_count,
        }

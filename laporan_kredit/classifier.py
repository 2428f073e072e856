"""Line classification for text extracted from NPL / KOL2 / realisasi PDFs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Sequence, Tuple

from .models import LEDGER_WIDTH, ClassifiedLine, LineRole
from .numeral import looks_numeric, numeric_ratio

__all__ = [
    "MAX_BRANCH_INDEX",
    "CONTINUATION_RATIO",
    "classify",
    "classify_daily",
    "find_region",
    "mask_regions",
    "region_spans",
    "strip_trailing_region",
    "is_noise",
    "parse_day",
    "starts_with_phrase",
]

MAX_BRANCH_INDEX = 50
MAX_DAY = 31
CONTINUATION_RATIO = 0.30

# Whole-line labels: a line consisting of exactly one of these is a header cell
NOISE_WORDS = frozenset(
    {
        "NO",
        "NO.",
        "KUR",
        "KUMK",
        "TOTAL",
        "NPL",
        "KOL2",
        "KOL 2",
        "KOL-2",
        "%",
        "NOMINAL",
        "RP",
        "CABANG",
        "KANWIL",
        "UNIT",
        "SME SWADANA",
        "REALISASI",
        "TANGGAL",
        "TGL",
    }
)

# Phrases that only ever appear in titles, column-group labels or footers
NOISE_FRAGMENTS = (
    "DALAM JUTAAN",
    "DALAM RIBUAN",
    "DALAM RUPIAH",
    "JUTAAN RUPIAH",
    "(RP JUTA)",
    "(RP. JUTA)",
    "(JUTA)",
    "NAMA CABANG",
    "NAMA KANWIL",
    "NO CABANG",
    "NO. CABANG",
    "POSISI TANGGAL",
    "POSISI :",
    "LAPORAN ",
    "MONITORING ",
    "HALAMAN",
    "PAGE ",
    "DICETAK",
    "SUMBER DATA",
    "KETERANGAN",
)

NATIONAL_MARKERS = ("TOTAL NASIONAL", "NASIONAL")
REGION_MARKERS = ("TOTAL KANWIL", "KANWIL")
TOTAL_ROW_MARKERS = ("TOTAL", "JUMLAH", "GRAND TOTAL")

_INDEX_PATTERN = re.compile(r"^(\d{1,3})\.?$")
_TOKEN_PATTERN = re.compile(r"\S+")
_DAY_PATTERN = re.compile(r"^(\d{1,2})(?:[./-](\d{1,2})(?:[./-](\d{2,4}))?)?\.?$")


def _normalize_text(text: str) -> str:
    return " ".join((text or "").split())


def starts_with_phrase(upper: str, phrases: Sequence[str]) -> Optional[str]:
    for phrase in phrases:
        if upper == phrase or upper.startswith(phrase + " "):
            return phrase
    return None


@lru_cache(maxsize=32)
def _region_patterns(known_regions: Tuple[str, ...]) -> Tuple[Tuple[str, re.Pattern], ...]:
    # Longest first so "Jakarta II" wins over "Jakarta I"
    ordered = sorted(known_regions, key=len, reverse=True)
    return tuple(
        (name, re.compile(rf"(?<!\w){re.escape(name)}(?!\w)", re.IGNORECASE))
        for name in ordered
    )


def find_region(text: str, known_regions: Sequence[str]) -> Optional[Tuple[str, int, int]]:
    """Return ``(name, start, end)`` of the earliest known region name in ``text``."""
    best: Optional[Tuple[str, int, int]] = None
    for name, pattern in _region_patterns(tuple(known_regions)):
        match = pattern.search(text)
        if match and (best is None or match.start() < best[1]):
            best = (name, match.start(), match.end())
    return best


def mask_regions(text: str, known_regions: Sequence[str]) -> str:
    """Blank out region names so digits inside them ("Sumatera 1") are not read as data."""
    masked = text
    for _, pattern in _region_patterns(tuple(known_regions)):
        masked = pattern.sub(" ", masked)
    return masked


def region_spans(text: str, known_regions: Sequence[str]) -> List[Tuple[int, int]]:
    """Character ranges of every known region name in ``text``."""
    spans: List[Tuple[int, int]] = []
    for _, pattern in _region_patterns(tuple(known_regions)):
        for match in pattern.finditer(text):
            if not any(start < match.end() and match.start() < end for start, end in spans):
                spans.append((match.start(), match.end()))
    return sorted(spans)


def strip_trailing_region(name: str, known_regions: Sequence[str]) -> str:
    """Drop a kanwil column printed after the branch name.

    Only a trailing mention is removed, and never the whole name, so
    "Kalimantan Timur" stays intact under kanwil Kalimantan.
    """
    text = _normalize_text(name)
    for _, pattern in _region_patterns(tuple(known_regions)):
        for match in pattern.finditer(text):
            if match.start() > 0 and match.end() == len(text):
                return text[: match.start()].strip(" -,")
    return text


def is_noise(text: str) -> bool:
    upper = _normalize_text(text).upper()
    if not upper:
        return True
    if upper in NOISE_WORDS:
        return True
    return any(fragment in upper for fragment in NOISE_FRAGMENTS)


@dataclass(frozen=True, slots=True)
class _LineContext:
    text: str
    upper: str
    tokens: List[str]
    known_regions: Sequence[str]
    current_region: Optional[str]
    in_progress: bool


Rule = Callable[[_LineContext], Optional[ClassifiedLine]]


def _noise_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if is_noise(ctx.text):
        return ClassifiedLine(text=ctx.text, role=LineRole.NOISE)
    return None


def _national_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if starts_with_phrase(ctx.upper, NATIONAL_MARKERS):
        return ClassifiedLine(text=ctx.text, role=LineRole.NATIONAL_TOTAL)
    return None


def _region_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if not starts_with_phrase(ctx.upper, REGION_MARKERS):
        return None
    found = find_region(ctx.text, ctx.known_regions)
    if not found:
        # Malformed total row: drop rather than guess the region
        return ClassifiedLine(text=ctx.text, role=LineRole.NOISE)
    return ClassifiedLine(text=ctx.text, role=LineRole.REGION_TOTAL, region=found[0])


def _leaf_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if len(ctx.tokens) < 2:
        return None
    match = _INDEX_PATTERN.match(ctx.tokens[0])
    if not match:
        return None
    index = int(match.group(1))
    if not 1 <= index <= MAX_BRANCH_INDEX:
        return None
    if looks_numeric(ctx.tokens[1]) or not any(ch.isalpha() for ch in ctx.tokens[1]):
        return None

    spans = [(m.start(), m.end()) for m in _TOKEN_PATTERN.finditer(ctx.text)]
    covered = region_spans(ctx.text, ctx.known_regions)

    def in_region(span: Tuple[int, int]) -> bool:
        return any(start < span[1] and span[0] < end for start, end in covered)

    # Values are the trailing numeric run; a leaf carries at most twelve of them,
    # so numeric tokens in front of the last twelve belong to the name.
    value_offset = len(spans)
    floor = max(2, len(spans) - LEDGER_WIDTH)
    while value_offset > floor:
        span = spans[value_offset - 1]
        if in_region(span) or not looks_numeric(ctx.text[span[0]:span[1]]):
            break
        value_offset -= 1

    name = ctx.text[spans[1][0]:spans[value_offset - 1][1]]
    return ClassifiedLine(
        text=ctx.text,
        role=LineRole.LEAF_CANDIDATE,
        region=ctx.current_region,
        index=index,
        name=strip_trailing_region(name, ctx.known_regions),
        value_offset=value_offset,
    )


def _continuation_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if ctx.in_progress and numeric_ratio(ctx.text) > CONTINUATION_RATIO:
        return ClassifiedLine(text=ctx.text, role=LineRole.CONTINUATION)
    return None


# Precedence is the list order; the first rule that answers wins
LEDGER_RULES: Tuple[Rule, ...] = (
    _noise_rule,
    _national_rule,
    _region_rule,
    _leaf_rule,
    _continuation_rule,
)


def _run_rules(rules: Sequence[Rule], ctx: _LineContext) -> ClassifiedLine:
    for rule in rules:
        result = rule(ctx)
        if result is not None:
            return result
    return ClassifiedLine(text=ctx.text, role=LineRole.NOISE)


def _context(
    line: str,
    known_regions: Sequence[str],
    current_region: Optional[str],
    in_progress: bool,
) -> _LineContext:
    text = _normalize_text(line)
    return _LineContext(
        text=text,
        upper=text.upper(),
        tokens=text.split(),
        known_regions=known_regions,
        current_region=current_region,
        in_progress=in_progress,
    )


def classify(
    line: str,
    known_regions: Sequence[str],
    *,
    current_region: Optional[str] = None,
    in_progress: bool = False,
) -> ClassifiedLine:
    """Label one line of an NPL / KOL2 text dump."""
    return _run_rules(LEDGER_RULES, _context(line, known_regions, current_region, in_progress))


def parse_day(token: str) -> Optional[int]:
    """Read a day-of-month from ``"5"``, ``"05."`` or ``"05/01/2025"``."""
    match = _DAY_PATTERN.match(token.strip())
    if not match:
        return None
    day = int(match.group(1))
    if match.group(2) is not None and not 1 <= int(match.group(2)) <= 12:
        return None
    if 1 <= day <= MAX_DAY:
        return day
    return None


def _total_row_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if starts_with_phrase(ctx.upper, TOTAL_ROW_MARKERS):
        return ClassifiedLine(text=ctx.text, role=LineRole.TOTAL_ROW)
    return None


def _daily_rule(ctx: _LineContext) -> Optional[ClassifiedLine]:
    if len(ctx.tokens) < 2:
        return None
    day = parse_day(ctx.tokens[0])
    if day is None:
        return None
    if not looks_numeric(ctx.tokens[1]):
        return None
    return ClassifiedLine(text=ctx.text, role=LineRole.DAILY_ROW, day=day)


DAILY_RULES: Tuple[Rule, ...] = (
    _noise_rule,
    _total_row_rule,
    _daily_rule,
    _continuation_rule,
)


def classify_daily(line: str, *, in_progress: bool = False) -> ClassifiedLine:
    """Label one line of a realisasi text dump."""
    return _run_rules(DAILY_RULES, _context(line, (), None, in_progress))

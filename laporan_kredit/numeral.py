"""Helpers for parsing numbers printed in NPL / realisasi reports."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import List, Optional

from .models import NumericToken

__all__ = [
    "NumberFormat",
    "DEFAULT_FORMAT",
    "parse_token",
    "normalize",
    "looks_numeric",
    "extract_numbers",
    "numeric_ratio",
]

DASHES = {"-", "\u2013", "\u2014", "\u2212"}  # hyphen, en/em dash, minus sign
_SIGNS = ("-", "\u2212")
_SPACE_PATTERN = re.compile(r"\s")
_PLAIN_PATTERN = re.compile(r"^\d+(?:\.\d+)?$")
_NUMERIC_SHAPE = re.compile(r"^[(\-\u2212]?[\d.,]*\d[\d.,]*%?\)?$")
_NUMERIC_CHARS = set("0123456789.,()-%")


@dataclass(frozen=True, slots=True)
class NumberFormat:
    """How to read a token with a single separator followed by three digits.

    ``1.234`` is a thousands grouping when ``single_group_is_thousands`` is
    set, otherwise a three-decimal value. The same applies to ``1,234``.
    """

    single_group_is_thousands: bool = True


DEFAULT_FORMAT = NumberFormat()


def parse_token(raw: str, fmt: NumberFormat = DEFAULT_FORMAT) -> NumericToken:
    """Resolve a single whitespace-delimited token."""
    text = (raw or "").strip()

    if text in DASHES:
        return NumericToken(raw=raw, value=0.0, rule="dash_zero")

    if len(text) > 2 and text.startswith("(") and text.endswith(")"):
        inner = _clean_magnitude(text[1:-1], fmt)
        value = -inner if inner is not None else None
        return NumericToken(raw=raw, value=value, rule="parenthesized")

    if len(text) > 1 and text.startswith(_SIGNS):
        inner = _clean_magnitude(text[1:], fmt)
        value = -inner if inner is not None else None
        return NumericToken(raw=raw, value=value, rule="signed")

    return NumericToken(raw=raw, value=_clean_magnitude(text, fmt), rule="plain")


def normalize(token: str, fmt: NumberFormat = DEFAULT_FORMAT) -> Optional[float]:
    """Return the numeric value of ``token`` or None when it cannot be read."""
    return parse_token(token, fmt).value


def _clean_magnitude(text: str, fmt: NumberFormat) -> Optional[float]:
    value = _SPACE_PATTERN.sub("", text)
    if value.endswith("%"):
        value = value[:-1]
    if not value:
        return None

    has_dot = "." in value
    has_comma = "," in value
    if has_dot and has_comma:
        # Rightmost separator is the decimal point, every other one groups thousands
        decimal_at = max(value.rfind("."), value.rfind(","))
        integer_part = value[:decimal_at].replace(".", "").replace(",", "")
        value = f"{integer_part}.{value[decimal_at + 1:]}"
    elif has_dot:
        value = _single_separator(value, ".", fmt)
    elif has_comma:
        value = _single_separator(value, ",", fmt)

    if not _PLAIN_PATTERN.match(value):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def _single_separator(value: str, sep: str, fmt: NumberFormat) -> str:
    parts = value.split(sep)
    if len(parts) > 2:
        return "".join(parts)
    head, tail = parts
    if not tail:
        return head
    if len(tail) == 3 and head and head != "0" and fmt.single_group_is_thousands:
        return head + tail
    return f"{head}.{tail}"


def looks_numeric(token: str) -> bool:
    """True for tokens shaped like a printed number or a dash placeholder."""
    text = token.strip()
    return text in DASHES or bool(_NUMERIC_SHAPE.match(text))


def extract_numbers(text: str, fmt: NumberFormat = DEFAULT_FORMAT) -> List[float]:
    """Collect the values of all numeric-looking tokens in ``text``.

    Unparseable tokens are dropped rather than coerced to zero.
    """
    numbers: List[float] = []
    for token in text.split():
        if not looks_numeric(token):
            continue
        value = normalize(token, fmt)
        if value is not None:
            numbers.append(value)
    return numbers


def numeric_ratio(text: str) -> float:
    """Share of non-space characters that are digits or numeric punctuation."""
    chars = [ch for ch in text if not ch.isspace()]
    if not chars:
        return 0.0
    numeric = sum(1 for ch in chars if ch in _NUMERIC_CHARS or ch in DASHES)
    return numeric / len(chars)

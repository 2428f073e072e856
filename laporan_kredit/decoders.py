"""Turn uploaded report bytes into text lines or spreadsheet rows."""

from __future__ import annotations

import io
import math
import numbers
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, List, Optional

import pandas as pd
import pdfplumber

from .logging import get_logger

logger = get_logger(__name__)

__all__ = ["ReportError", "DecodeError", "DecodedDocument", "decode_document", "SUPPORTED_SUFFIXES"]

PDF_SUFFIXES = {".pdf"}
EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}
TEXT_SUFFIXES = {".txt"}
SUPPORTED_SUFFIXES = PDF_SUFFIXES | EXCEL_SUFFIXES | CSV_SUFFIXES | TEXT_SUFFIXES


class ReportError(Exception):
    """Raised when an uploaded report cannot be turned into a table."""


class DecodeError(ReportError):
    """Raised when the source file itself cannot be read."""


@dataclass(slots=True)
class DecodedDocument:
    lines: Optional[List[str]] = None
    rows: Optional[List[List[Any]]] = None

    @property
    def is_sheet(self) -> bool:
        return self.rows is not None


def decode_document(filename: str, data: bytes) -> DecodedDocument:
    """Decode ``data`` according to the extension of ``filename``."""
    suffix = PurePath(filename or "").suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ReportError(f"Unsupported file type '{suffix or filename}'")
    if not data:
        raise DecodeError(f"{filename} is empty")

    try:
        if suffix in PDF_SUFFIXES:
            document = DecodedDocument(lines=_pdf_lines(filename, data))
        elif suffix in EXCEL_SUFFIXES:
            document = DecodedDocument(rows=_excel_rows(data))
        elif suffix in CSV_SUFFIXES:
            document = DecodedDocument(rows=_csv_rows(data))
        else:
            document = DecodedDocument(lines=data.decode("utf-8-sig").splitlines())
    except ReportError:
        raise
    except Exception as exc:
        logger.warning("decode_failed", filename=filename, error=str(exc))
        raise DecodeError(f"Unable to read {filename}: {exc}") from exc

    logger.info(
        "document_decoded",
        filename=filename,
        lines=len(document.lines) if document.lines is not None else None,
        rows=len(document.rows) if document.rows is not None else None,
    )
    return document


def _pdf_lines(filename: str, data: bytes) -> List[str]:
    lines: List[str] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            text = page.extract_text() or ""
            lines.extend(line for line in text.splitlines() if line.strip())
    if not lines:
        raise DecodeError(f"{filename} has no extractable text layer")
    return lines


def _excel_rows(data: bytes) -> List[List[Any]]:
    frame = pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, engine="openpyxl")
    return _frame_rows(frame)


def _csv_rows(data: bytes) -> List[List[Any]]:
    # Keep cells as text so the report's own number formatting is preserved
    frame = pd.read_csv(
        io.BytesIO(data),
        header=None,
        dtype=str,
        keep_default_na=False,
        sep=None,
        engine="python",
    )
    return _frame_rows(frame)


def _frame_rows(frame: pd.DataFrame) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for record in frame.itertuples(index=False, name=None):
        rows.append([_clean_cell(value) for value in record])
    return rows


def _clean_cell(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, numbers.Real):
        number = float(value)
        return None if math.isnan(number) else number
    if pd.isna(value):
        return None
    return value

"""Decode, extract, assemble and publish uploaded reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .assembler import PublishedArtifact, Table, assemble
from .builder import ExtractOptions, build_npl_table, build_npl_table_from_rows
from .config import AppConfig
from .decoders import DecodedDocument, ReportError, decode_document
from .logging import bind_report, clear_report, get_logger
from .models import LEDGER_TABLE_KINDS, REPORT_KINDS, NplTable, UploadSummary
from .realisasi import build_realisasi_table, build_realisasi_table_from_rows
from .storage import ArtifactStore, StorageError

logger = get_logger(__name__)

__all__ = ["UploadOutcome", "extract_table", "ReportPublisher"]


@dataclass(slots=True)
class UploadOutcome:
    kind: str
    filename: str
    summary: Optional[UploadSummary] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"filename": self.filename, "success": self.ok}
        if self.summary is not None:
            payload["summary"] = self.summary.to_dict()
        if self.error is not None:
            payload["error"] = self.error
        return payload


def extract_table(
    kind: str,
    document: DecodedDocument,
    known_regions: Sequence[str],
    options: Optional[ExtractOptions] = None,
) -> Table:
    """Run the extraction engine for one report kind.

    NPL and KOL2 share one document shape and therefore one builder.
    """
    if kind not in REPORT_KINDS:
        raise ReportError(f"Unknown report kind '{kind}'")

    if kind in LEDGER_TABLE_KINDS:
        if document.is_sheet:
            return build_npl_table_from_rows(document.rows or [], known_regions, options=options)
        return build_npl_table(document.lines or [], known_regions, options)

    if document.is_sheet:
        return build_realisasi_table_from_rows(document.rows or [], options=options)
    return build_realisasi_table(document.lines or [], options)


def _is_empty(table: Table) -> bool:
    if isinstance(table, NplTable):
        return table.national_total is None and not table.regions and not table.branches
    return not table.days


class ReportPublisher:
    def __init__(self, config: AppConfig, store: ArtifactStore) -> None:
        self.config = config
        self.store = store

    def parse(self, kind: str, filename: str, data: bytes) -> Table:
        if kind not in REPORT_KINDS:
            raise ReportError(f"Unknown report kind '{kind}'")
        if len(data) > self.config.max_upload_bytes:
            raise ReportError(
                f"{filename} is {len(data)} bytes, limit is {self.config.max_upload_bytes}"
            )
        document = decode_document(filename, data)
        table = extract_table(kind, document, self.config.kanwil_names, self.config.extract_options)
        if _is_empty(table):
            # Keep the previously published artifact rather than replacing it with nothing
            raise ReportError(f"No {kind} table rows found in {filename}")
        return table

    def build_artifact(
        self,
        kind: str,
        filename: str,
        data: bytes,
        now: Optional[datetime] = None,
    ) -> PublishedArtifact:
        table = self.parse(kind, filename, data)
        return assemble(kind, table, filename, len(data), now=now)

    def publish_upload(
        self,
        kind: str,
        filename: str,
        data: bytes,
        now: Optional[datetime] = None,
    ) -> UploadSummary:
        bind_report(kind, filename)
        try:
            artifact = self.build_artifact(kind, filename, data, now=now)
            self.store.publish(artifact)
            summary = artifact.summary()
            logger.info("upload_published", size=len(data), **summary.to_dict())
            return summary
        finally:
            clear_report()

    def publish_uploads(
        self,
        files: Mapping[str, Tuple[str, bytes]],
        now: Optional[datetime] = None,
    ) -> Dict[str, UploadOutcome]:
        """Publish every supplied kind on its own; kinds not supplied stay untouched."""
        unknown = sorted(set(files) - set(REPORT_KINDS))
        if unknown:
            raise ReportError(f"Unknown report kind(s): {', '.join(unknown)}")

        moment = now or datetime.now(timezone.utc)
        outcomes: Dict[str, UploadOutcome] = {}
        for kind in REPORT_KINDS:
            if kind not in files:
                continue
            filename, data = files[kind]
            outcome = UploadOutcome(kind=kind, filename=filename)
            try:
                outcome.summary = self.publish_upload(kind, filename, data, now=moment)
            except (ReportError, StorageError) as exc:
                logger.warning("upload_failed", kind=kind, filename=filename, error=str(exc))
                outcome.error = str(exc)
            outcomes[kind] = outcome
        return outcomes

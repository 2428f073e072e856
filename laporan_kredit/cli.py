"""Command-line interface for the laporan kredit extractor."""

from __future__ import annotations

import json
from contextlib import closing
from pathlib import Path
from typing import Dict, List, Tuple

import typer

from .assembler import assemble, dumps, placeholder_npl_table, placeholder_realisasi_table
from .decoders import ReportError
from .logging import get_logger
from .models import LEDGER_TABLE_KINDS, REPORT_KINDS
from .runtime import build_runtime

logger = get_logger(__name__)

app = typer.Typer(add_completion=False, help="NPL / KOL2 / realisasi report extractor")


def _check_kind(kind: str) -> str:
    value = kind.lower()
    if value not in REPORT_KINDS:
        raise typer.BadParameter(f"kind must be one of {', '.join(REPORT_KINDS)}")
    return value


def _read_file(path: Path) -> bytes:
    if not path.is_file():
        raise typer.BadParameter(f"{path} does not exist")
    return path.read_bytes()


@app.command("parse")
def parse_command(
    kind: str = typer.Argument(..., help="Report kind: npl, kol2 or realisasi"),
    path: Path = typer.Argument(..., help="PDF, XLSX, CSV or TXT report"),
    pretty: bool = typer.Option(False, "--pretty", help="Indent the JSON output"),
) -> None:
    """Extract a report and print the table without publishing it."""
    kind = _check_kind(kind)
    data = _read_file(path)
    runtime = build_runtime()
    with closing(runtime):
        try:
            table = runtime.publisher.parse(kind, path.name, data)
        except ReportError as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        payload = table.to_dict()
        if pretty:
            typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        else:
            typer.echo(dumps(payload).decode("utf-8"))


@app.command("publish")
def publish_command(
    kind: str = typer.Argument(..., help="Report kind: npl, kol2 or realisasi"),
    path: Path = typer.Argument(..., help="PDF, XLSX, CSV or TXT report"),
) -> None:
    """Extract a report and replace the published artifact of its kind."""
    kind = _check_kind(kind)
    data = _read_file(path)
    runtime = build_runtime()
    with closing(runtime):
        outcomes = runtime.publisher.publish_uploads({kind: (path.name, data)})
        outcome = outcomes[kind]
        if not outcome.ok:
            typer.echo(f"Error: {outcome.error}", err=True)
            raise typer.Exit(code=1)
        typer.echo(json.dumps({kind: outcome.to_dict()}, ensure_ascii=False))


@app.command("status")
def status_command() -> None:
    """Show the metadata of the published artifacts."""
    runtime = build_runtime()
    with closing(runtime):
        typer.echo(json.dumps(runtime.store.status(), ensure_ascii=False, indent=2))


@app.command("seed-placeholder")
def seed_placeholder_command(
    path: Path = typer.Argument(..., help="JSON file mapping kanwil to [branch, total, totalPercent] entries"),
    kinds: List[str] = typer.Option(
        list(LEDGER_TABLE_KINDS), "--kind", help="Kinds to seed (npl, kol2)"
    ),
) -> None:
    """Publish placeholder NPL / KOL2 tables for dashboards with no upload yet."""
    try:
        raw = json.loads(_read_file(path))
    except ValueError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON") from exc

    branches: Dict[str, List[Tuple[str, float, float]]] = {}
    for region, entries in raw.items():
        branches[region] = [(str(name), float(total), float(pct)) for name, total, pct in entries]

    runtime = build_runtime()
    with closing(runtime):
        for kind in kinds:
            kind = _check_kind(kind)
            if kind not in LEDGER_TABLE_KINDS:
                raise typer.BadParameter("placeholders exist only for npl and kol2")
            table = placeholder_npl_table(branches)
            artifact = assemble(kind, table, path.name, 0)
            runtime.store.publish(artifact)
            typer.echo(f"Placeholder {kind} published ({len(table.branches)} branches)")


@app.command("seed-realisasi")
def seed_realisasi_command(
    path: Path = typer.Argument(
        ...,
        help='JSON file with "dailyData" [date, kur, kumk, smeSwadana, total] rows and optional "priorPrior" / "prior"',
    ),
) -> None:
    """Publish a placeholder realisasi table for dashboards with no upload yet."""
    try:
        raw = json.loads(_read_file(path))
        days = [tuple(entry) for entry in raw["dailyData"]]
        table = placeholder_realisasi_table(days, raw.get("priorPrior"), raw.get("prior"))
    except (ValueError, KeyError, TypeError) as exc:
        raise typer.BadParameter(f"{path} is not a valid realisasi seed: {exc}") from exc

    runtime = build_runtime()
    with closing(runtime):
        runtime.store.publish(assemble("realisasi", table, path.name, 0))
        typer.echo(f"Placeholder realisasi published ({len(table.days)} days)")


@app.command("service")
def service_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Service bind host"),
    port: int = typer.Option(8000, "--port", help="Service port"),
) -> None:
    import uvicorn

    uvicorn.run(
        "laporan_kredit.app:create_app",
        host=host,
        port=port,
        factory=True,
        log_level="info",
    )


def main():
    app()


if __name__ == "__main__":  # pragma: no cover
    main()

import json

import pytest
from typer.testing import CliRunner

from laporan_kredit.cli import app

runner = CliRunner()


@pytest.fixture()
def artifact_dir(tmp_path, monkeypatch):
    target = tmp_path / "published"
    monkeypatch.setenv("ARTIFACT_TARGET_URL", str(target))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    return target


def test_publish_writes_artifacts(artifact_dir, tmp_path, npl_lines):
    report = tmp_path / "npl_januari.txt"
    report.write_text("\n".join(npl_lines), encoding="utf-8")

    result = runner.invoke(app, ["publish", "npl", str(report)])
    assert result.exit_code == 0
    metadata = json.loads((artifact_dir / "npl_metadata.json").read_text(encoding="utf-8"))
    assert metadata["filename"] == "npl_januari.txt"
    assert metadata["fileSize"] == report.stat().st_size


def test_publish_reports_failure(artifact_dir, tmp_path):
    report = tmp_path / "kol2.txt"
    report.write_text("Halaman 1 dari 1\n", encoding="utf-8")

    result = runner.invoke(app, ["publish", "kol2", str(report)])
    assert result.exit_code == 1
    assert not (artifact_dir / "kol2_parsed.json").exists()


def test_rejects_unknown_kind(artifact_dir, tmp_path):
    report = tmp_path / "x.txt"
    report.write_text("1", encoding="utf-8")
    result = runner.invoke(app, ["parse", "lhbu", str(report)])
    assert result.exit_code != 0


def test_seed_placeholder(artifact_dir, tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({"Jabanus": [["Denpasar", 100, 2.5]]}), encoding="utf-8")

    result = runner.invoke(app, ["seed-placeholder", str(seed), "--kind", "kol2"])
    assert result.exit_code == 0
    parsed = json.loads((artifact_dir / "kol2_parsed.json").read_text(encoding="utf-8"))
    assert parsed["cabangData"][0]["kumk"] == pytest.approx(55)
    assert not (artifact_dir / "npl_parsed.json").exists()


def test_seed_realisasi(artifact_dir, tmp_path):
    seed = tmp_path / "realisasi_seed.json"
    seed.write_text(
        json.dumps({"dailyData": [[2, 5, 6, 7, 18], [1, 1, 1, 1, 3]], "prior": 40}),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["seed-realisasi", str(seed)])
    assert result.exit_code == 0
    assert "2 days" in result.output
    parsed = json.loads((artifact_dir / "realisasi_parsed.json").read_text(encoding="utf-8"))
    assert [row["date"] for row in parsed["dailyData"]] == [1, 2]
    assert parsed["monthlyTotals"] == {"priorPrior": None, "prior": 40, "current": 21}


def test_seed_realisasi_rejects_bad_day(artifact_dir, tmp_path):
    seed = tmp_path / "realisasi_seed.json"
    seed.write_text(json.dumps({"dailyData": [[40, 1, 1, 1, 3]]}), encoding="utf-8")

    result = runner.invoke(app, ["seed-realisasi", str(seed)])
    assert result.exit_code != 0
    assert not (artifact_dir / "realisasi_parsed.json").exists()

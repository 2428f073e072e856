import json
from datetime import datetime, timezone

import httpx
import pytest

from laporan_kredit.assembler import assemble
from laporan_kredit.models import RealisasiTable
from laporan_kredit.realisasi import build_realisasi_table
from laporan_kredit.storage import ArtifactStore, StorageError

NOW = datetime(2025, 2, 1, tzinfo=timezone.utc)


def make_artifact(lines, kind="realisasi"):
    return assemble(kind, build_realisasi_table(lines), "realisasi.pdf", 10, now=NOW)


def test_file_store_publish_and_fetch(store, realisasi_lines):
    assert store.status() == {"npl": None, "kol2": None, "realisasi": None}

    locations = store.publish(make_artifact(realisasi_lines))
    assert [loc.rsplit("/", 1)[-1] for loc in locations] == [
        "realisasi_parsed.json",
        "realisasi_metadata.json",
    ]

    parsed = json.loads(store.fetch("realisasi", "parsed"))
    assert parsed["monthlyTotals"]["current"] == 22833
    status = store.status()
    assert status["realisasi"]["uploadDate"] == "2025-02-01T00:00:00.000Z"
    assert status["npl"] is None


def test_publish_overwrites_previous_artifact(store, realisasi_lines):
    store.publish(make_artifact(realisasi_lines))
    store.publish(assemble("realisasi", RealisasiTable(), "empty.pdf", 0, now=NOW))
    assert json.loads(store.fetch("realisasi", "metadata"))["filename"] == "empty.pdf"
    leftovers = [path.name for path in store.directory.iterdir() if path.name.endswith(".tmp")]
    assert leftovers == []


def test_file_url_with_relative_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    relative = ArtifactStore("file://./data/artifacts")
    relative.put("npl_parsed.json", b"{}")
    assert (tmp_path / "data" / "artifacts" / "npl_parsed.json").read_bytes() == b"{}"


def test_rejects_bad_names_and_kinds(store):
    with pytest.raises(ValueError):
        store.put("../escape.json", b"{}")
    with pytest.raises(ValueError):
        store.fetch("lhbu", "parsed")
    with pytest.raises(ValueError):
        store.fetch("npl", "raw")
    with pytest.raises(ValueError):
        ArtifactStore("ftp://example.com/artifacts")


def test_corrupt_metadata_reports_none(store):
    store.put("kol2_metadata.json", b"not json")
    assert store.status()["kol2"] is None


def test_http_store_puts_and_gets():
    objects = {}

    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if request.method == "PUT":
            objects[name] = request.content
            return httpx.Response(200)
        if name in objects:
            return httpx.Response(200, content=objects[name])
        return httpx.Response(404)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    http_store = ArtifactStore("https://blob.example.com/laporan/", client=client)

    location = http_store.put("npl_parsed.json", b'{"a":1}')
    assert location == "https://blob.example.com/laporan/npl_parsed.json"
    assert http_store.get("npl_parsed.json") == b'{"a":1}'
    assert http_store.get("kol2_parsed.json") is None
    http_store.close()


def test_http_store_raises_after_retries(monkeypatch):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.method)
        return httpx.Response(503)

    monkeypatch.setattr("laporan_kredit.storage.time.sleep", lambda seconds: None)
    client = httpx.Client(transport=httpx.MockTransport(handler))
    http_store = ArtifactStore("https://blob.example.com", retries=2, client=client)

    with pytest.raises(StorageError):
        http_store.put("npl_metadata.json", b"{}")
    assert calls == ["PUT", "PUT"]

    # A failing backend surfaces as "nothing published" in the status view
    calls.clear()
    assert http_store.status() == {"npl": None, "kol2": None, "realisasi": None}
    assert len(calls) == 6

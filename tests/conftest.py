from pathlib import Path

import pytest

from laporan_kredit.config import DEFAULT_KANWIL_NAMES, AppConfig
from laporan_kredit.pipeline import ReportPublisher
from laporan_kredit.storage import ArtifactStore

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture()
def regions():
    return DEFAULT_KANWIL_NAMES


@pytest.fixture()
def npl_lines():
    return (FIXTURES / "npl_sample.txt").read_text(encoding="utf-8").splitlines()


@pytest.fixture()
def realisasi_lines():
    return (FIXTURES / "realisasi_sample.txt").read_text(encoding="utf-8").splitlines()


@pytest.fixture()
def app_config(tmp_path):
    return AppConfig(
        artifact_target_url=str(tmp_path / "artifacts"),
        artifact_token=None,
        http_timeout=5.0,
        http_retries=1,
        kanwil_names=DEFAULT_KANWIL_NAMES,
        single_group_is_thousands=True,
        max_lookahead=6,
        max_upload_bytes=1024 * 1024,
        log_level="INFO",
        log_format="json",
    )


@pytest.fixture()
def store(app_config):
    artifact_store = ArtifactStore(app_config.artifact_target_url)
    yield artifact_store
    artifact_store.close()


@pytest.fixture()
def publisher(app_config, store):
    return ReportPublisher(app_config, store)

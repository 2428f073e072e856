import pytest

from laporan_kredit.config import DEFAULT_ARTIFACT_TARGET, DEFAULT_KANWIL_NAMES, load_config

ENV_KEYS = (
    "ARTIFACT_TARGET_URL",
    "ARTIFACT_TOKEN",
    "HTTP_TIMEOUT_SECONDS",
    "HTTP_RETRIES",
    "KANWIL_NAMES",
    "NUMBER_SINGLE_GROUP_THOUSANDS",
    "COLLECT_MAX_LOOKAHEAD",
    "MAX_UPLOAD_BYTES",
    "LOG_LEVEL",
    "LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    config = load_config()
    assert config.artifact_target_url == DEFAULT_ARTIFACT_TARGET
    assert config.artifact_token is None
    assert config.kanwil_names == DEFAULT_KANWIL_NAMES
    assert config.single_group_is_thousands is True
    assert config.max_lookahead == 6
    assert config.log_format == "json"
    assert config.extract_options.fmt.single_group_is_thousands is True


def test_overrides(monkeypatch):
    monkeypatch.setenv("ARTIFACT_TARGET_URL", "s3://laporan/artifacts")
    monkeypatch.setenv("KANWIL_NAMES", " Jakarta  I , Papua ,, ")
    monkeypatch.setenv("NUMBER_SINGLE_GROUP_THOUSANDS", "no")
    monkeypatch.setenv("COLLECT_MAX_LOOKAHEAD", "3")
    monkeypatch.setenv("HTTP_RETRIES", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_FORMAT", "Console")

    config = load_config()
    assert config.artifact_target_url == "s3://laporan/artifacts"
    assert config.kanwil_names == ("Jakarta I", "Papua")
    assert config.http_retries == 1
    assert config.log_level == "DEBUG"
    assert config.log_format == "console"
    options = config.extract_options
    assert options.max_lookahead == 3
    assert options.fmt.single_group_is_thousands is False


def test_blank_values_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("ARTIFACT_TARGET_URL", "   ")
    assert load_config().artifact_target_url == DEFAULT_ARTIFACT_TARGET


@pytest.mark.parametrize(
    "key, value",
    [
        ("HTTP_RETRIES", "three"),
        ("HTTP_TIMEOUT_SECONDS", "soon"),
        ("NUMBER_SINGLE_GROUP_THOUSANDS", "maybe"),
        ("COLLECT_MAX_LOOKAHEAD", "0"),
        ("KANWIL_NAMES", ", ,"),
        ("LOG_FORMAT", "xml"),
    ],
)
def test_invalid_values(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValueError):
        load_config()

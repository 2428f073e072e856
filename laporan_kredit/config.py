"""Configuration loader for the laporan kredit service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from .builder import ExtractOptions
from .logging import LOG_FORMATS
from .numeral import NumberFormat

DEFAULT_KANWIL_NAMES: Tuple[str, ...] = (
    "Jakarta I",
    "Jakarta II",
    "Jateng DIY",
    "Jabanus",
    "Jawa Barat",
    "Kalimantan",
    "Sulampua",
    "Sumatera 1",
    "Sumatera 2",
)

DEFAULT_ARTIFACT_TARGET = "file://./data/artifacts"


def _get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is not None:
        value = value.strip()
        if value == "":
            return default
        return value
    return default


def _get_int(key: str, default: int) -> int:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be an integer") from exc


def _get_float(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be a number") from exc


def _get_bool(key: str, default: bool) -> bool:
    value = _get_env(key)
    if value is None:
        return default
    value_lower = value.lower()
    if value_lower in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if value_lower in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ValueError(f"Environment variable {key} must be a boolean")


def _get_list(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = _get_env(key)
    if value is None:
        return default
    items = tuple(" ".join(item.split()) for item in value.split(",") if item.strip())
    if not items:
        raise ValueError(f"Environment variable {key} must list at least one name")
    return items


@dataclass(slots=True)
class AppConfig:
    artifact_target_url: str
    artifact_token: Optional[str]
    http_timeout: float
    http_retries: int
    kanwil_names: Tuple[str, ...]
    single_group_is_thousands: bool
    max_lookahead: int
    max_upload_bytes: int
    log_level: str
    log_format: str

    @property
    def extract_options(self) -> ExtractOptions:
        return ExtractOptions(
            fmt=NumberFormat(single_group_is_thousands=self.single_group_is_thousands),
            max_lookahead=self.max_lookahead,
        )


def load_config() -> AppConfig:
    artifact_target_url = _get_env("ARTIFACT_TARGET_URL", DEFAULT_ARTIFACT_TARGET)
    artifact_token = _get_env("ARTIFACT_TOKEN")

    http_timeout = _get_float("HTTP_TIMEOUT_SECONDS", 30.0)
    http_retries = max(1, _get_int("HTTP_RETRIES", 3))

    kanwil_names = _get_list("KANWIL_NAMES", DEFAULT_KANWIL_NAMES)
    single_group_is_thousands = _get_bool("NUMBER_SINGLE_GROUP_THOUSANDS", True)

    max_lookahead = _get_int("COLLECT_MAX_LOOKAHEAD", 6)
    if max_lookahead < 1:
        raise ValueError("COLLECT_MAX_LOOKAHEAD must be at least 1")
    max_upload_bytes = max(1, _get_int("MAX_UPLOAD_BYTES", 20 * 1024 * 1024))

    log_level = _get_env("LOG_LEVEL", "INFO").upper()
    log_format = _get_env("LOG_FORMAT", "json").lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"LOG_FORMAT must be one of {', '.join(LOG_FORMATS)}")

    return AppConfig(
        artifact_target_url=artifact_target_url,
        artifact_token=artifact_token,
        http_timeout=http_timeout,
        http_retries=http_retries,
        kanwil_names=kanwil_names,
        single_group_is_thousands=single_group_is_thousands,
        max_lookahead=max_lookahead,
        max_upload_bytes=max_upload_bytes,
        log_level=log_level,
        log_format=log_format,
    )

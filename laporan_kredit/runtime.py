"""Runtime wiring for CLI and service entrypoints."""

from __future__ import annotations

from dataclasses import dataclass

from .config import AppConfig, load_config
from .logging import configure_logging
from .pipeline import ReportPublisher
from .storage import ArtifactStore


@dataclass(slots=True)
class Runtime:
    config: AppConfig
    store: ArtifactStore
    publisher: ReportPublisher

    def close(self) -> None:
        self.store.close()


def build_runtime(config: AppConfig | None = None) -> Runtime:
    cfg = config or load_config()
    configure_logging(cfg.log_level, cfg.log_format)

    store = ArtifactStore(
        cfg.artifact_target_url,
        token=cfg.artifact_token,
        timeout=cfg.http_timeout,
        retries=cfg.http_retries,
    )
    publisher = ReportPublisher(cfg, store)

    return Runtime(config=cfg, store=store, publisher=publisher)

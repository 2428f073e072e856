"""Object storage for published artifacts.

Each report kind owns two objects, ``{kind}_parsed.json`` and
``{kind}_metadata.json``. A publish overwrites both; there is no history and
the last writer wins.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from .assembler import PublishedArtifact
from .logging import get_logger
from .models import REPORT_KINDS

logger = get_logger(__name__)

__all__ = ["StorageError", "ArtifactStore", "ARTIFACT_FILES"]

ARTIFACT_FILES = ("parsed", "metadata")
_NAME_PATTERN = re.compile(r"^[a-z0-9_]+\.json$")


class StorageError(RuntimeError):
    """Raised when an artifact cannot be written to or read from the store."""


class ArtifactStore:
    def __init__(
        self,
        target_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        retries: int = 3,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not target_url:
            raise ValueError("target_url is required")
        self.target_url = target_url
        self.retries = max(1, retries)
        parsed = urlparse(target_url)
        self.scheme = parsed.scheme or "file"
        self._parsed = parsed
        self._lock = threading.Lock()
        self._client: Optional[httpx.Client] = None

        if self.scheme == "file":
            # file://./relative keeps the relative part in netloc
            raw_path = (parsed.netloc + parsed.path) if parsed.scheme else target_url
            self.directory = Path(raw_path)
        elif self.scheme in {"http", "https"}:
            headers = {"Authorization": f"Bearer {token}"} if token else {}
            self._client = client or httpx.Client(timeout=timeout, headers=headers, follow_redirects=True)
            self.base_url = target_url.rstrip("/")
        elif self.scheme == "s3":
            self.bucket = parsed.netloc
            self.prefix = parsed.path.strip("/")
        else:
            raise ValueError(f"Unsupported artifact target scheme: {self.scheme}")

    def close(self) -> None:
        if self._client is not None:
            with self._lock:
                self._client.close()

    def describe(self) -> str:
        return f"{self.scheme}:{self.target_url}"

    # -- object level -------------------------------------------------------

    def put(self, name: str, payload: bytes) -> str:
        _check_name(name)
        if self.scheme == "file":
            return self._put_file(name, payload)
        if self.scheme == "s3":
            return self._put_s3(name, payload)
        return self._put_http(name, payload)

    def get(self, name: str) -> Optional[bytes]:
        _check_name(name)
        if self.scheme == "file":
            path = self.directory / name
            try:
                return path.read_bytes()
            except FileNotFoundError:
                return None
        if self.scheme == "s3":
            return self._get_s3(name)
        return self._get_http(name)

    # -- artifact level -----------------------------------------------------

    def publish(self, artifact: PublishedArtifact) -> List[str]:
        """Write the table, then the metadata that announces it."""
        locations = [self.put(name, payload) for name, payload in artifact.files().items()]
        logger.info("artifact_published", kind=artifact.kind, locations=locations)
        return locations

    def fetch(self, kind: str, file: str) -> Optional[bytes]:
        if kind not in REPORT_KINDS:
            raise ValueError(f"Unknown report kind '{kind}'")
        if file not in ARTIFACT_FILES:
            raise ValueError(f"Unknown artifact file '{file}'")
        return self.get(f"{kind}_{file}.json")

    def status(self) -> Dict[str, Optional[Dict[str, Any]]]:
        """Metadata per report kind, None where nothing was published yet."""
        result: Dict[str, Optional[Dict[str, Any]]] = {}
        for kind in REPORT_KINDS:
            try:
                payload = self.fetch(kind, "metadata")
            except StorageError as exc:
                logger.warning("status_fetch_failed", kind=kind, error=str(exc))
                payload = None
            if payload is None:
                result[kind] = None
                continue
            try:
                result[kind] = json.loads(payload)
            except ValueError:
                logger.warning("status_metadata_invalid", kind=kind)
                result[kind] = None
        return result

    # -- backends -----------------------------------------------------------

    def _put_file(self, name: str, payload: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        target_path = self.directory / name
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, target_path)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Unable to write {target_path}: {exc}") from exc
        return str(target_path)

    def _s3_key(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def _put_s3(self, name: str, payload: bytes) -> str:
        import boto3  # type: ignore

        key = self._s3_key(name)
        client = boto3.client("s3")
        client.put_object(Bucket=self.bucket, Key=key, Body=payload, ContentType="application/json")
        return f"s3://{self.bucket}/{key}"

    def _get_s3(self, name: str) -> Optional[bytes]:
        import boto3  # type: ignore

        client = boto3.client("s3")
        try:
            response = client.get_object(Bucket=self.bucket, Key=self._s3_key(name))
        except client.exceptions.NoSuchKey:
            return None
        return response["Body"].read()

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        assert self._client is not None
        for attempt in range(1, self.retries + 1):
            try:
                with self._lock:
                    response = self._client.request(method, url, **kwargs)
                if response.status_code == 404 and method == "GET":
                    return response
                response.raise_for_status()
                return response
            except httpx.HTTPError as exc:
                logger.warning(
                    "http_retry",
                    method=method,
                    url=url,
                    attempt=attempt,
                    retries=self.retries,
                    error=str(exc),
                )
                if attempt == self.retries:
                    raise StorageError(f"{method} {url} failed: {exc}") from exc
                time.sleep(min(60.0, 2 ** (attempt - 1)))
        raise StorageError(f"{method} {url} failed")  # pragma: no cover

    def _put_http(self, name: str, payload: bytes) -> str:
        url = f"{self.base_url}/{name}"
        self._request("PUT", url, content=payload, headers={"Content-Type": "application/json"})
        return url

    def _get_http(self, name: str) -> Optional[bytes]:
        response = self._request("GET", f"{self.base_url}/{name}")
        if response.status_code == 404:
            return None
        return response.content


def _check_name(name: str) -> None:
    if not _NAME_PATTERN.match(name):
        raise ValueError(f"Invalid artifact name '{name}'")

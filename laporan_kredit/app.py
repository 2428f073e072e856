"""FastAPI application for uploading reports and serving published artifacts."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from .assembler import format_upload_date
from .logging import get_logger
from .models import REPORT_KINDS
from .runtime import Runtime, build_runtime
from .storage import ARTIFACT_FILES, StorageError

logger = get_logger(__name__)

NO_STORE = {"Cache-Control": "no-store, max-age=0"}


def get_runtime(request: Request) -> Runtime:
    runtime: Runtime = request.app.state.runtime
    return runtime


def create_app(runtime: Runtime | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "runtime", None) is None
        if owned:
            app.state.runtime = build_runtime()
        try:
            yield
        finally:
            if owned:
                app.state.runtime.close()

    api = FastAPI(title="Laporan Kredit Service", version="1.0.0", lifespan=lifespan)
    if runtime is not None:
        api.state.runtime = runtime

    @api.get("/health")
    def health(runtime: Runtime = Depends(get_runtime)) -> dict:
        return {
            "status": "healthy",
            "store": runtime.store.describe(),
            "kanwil": list(runtime.config.kanwil_names),
        }

    @api.post("/upload")
    async def upload(
        npl: Optional[UploadFile] = File(None),
        kol2: Optional[UploadFile] = File(None),
        realisasi: Optional[UploadFile] = File(None),
        runtime: Runtime = Depends(get_runtime),
    ):
        supplied = {"npl": npl, "kol2": kol2, "realisasi": realisasi}
        files: Dict[str, Tuple[str, bytes]] = {}
        for kind, upload_file in supplied.items():
            if upload_file is None or not upload_file.filename:
                continue
            files[kind] = (upload_file.filename, await upload_file.read())

        if not files:
            raise HTTPException(
                status_code=400,
                detail="At least one report file (npl, kol2, realisasi) is required",
            )

        now = datetime.now(timezone.utc)
        outcomes = await run_in_threadpool(runtime.publisher.publish_uploads, files, now)
        success = all(outcome.ok for outcome in outcomes.values())
        body = {
            "success": success,
            "message": "Files uploaded successfully" if success else "Some files could not be processed",
            "uploadDate": format_upload_date(now),
            "results": {kind: outcome.to_dict() for kind, outcome in outcomes.items()},
        }
        return JSONResponse(body, status_code=200 if success else 422)

    @api.get("/status")
    def status(runtime: Runtime = Depends(get_runtime)) -> dict:
        return runtime.store.status()

    @api.get("/data/{kind}/{file}")
    def data(kind: str, file: str, runtime: Runtime = Depends(get_runtime)) -> Response:
        if kind not in REPORT_KINDS or file not in ARTIFACT_FILES:
            raise HTTPException(status_code=404, detail=f"Data not found: {kind}_{file}.json")
        try:
            payload = runtime.store.fetch(kind, file)
        except StorageError as exc:
            logger.error("data_fetch_failed", kind=kind, file=file, error=str(exc))
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        if payload is None:
            raise HTTPException(status_code=404, detail=f"Data not found: {kind}_{file}.json")
        return Response(content=payload, media_type="application/json", headers=NO_STORE)

    return api


app = create_app()

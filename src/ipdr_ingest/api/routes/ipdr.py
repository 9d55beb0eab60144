"""Upload analysis, processing and job status endpoints."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import PurePath

from fastapi import APIRouter, BackgroundTasks, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse

from ipdr_ingest.core.exceptions import IpdrIngestError, PreflightError
from ipdr_ingest.models.pipeline import ProcessRequest
from ipdr_ingest.services.ingest import IngestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ipdr"])


def _service(request: Request) -> IngestService:
    return request.app.state.service


@router.get("/schema")
async def get_schema(request: Request) -> dict:
    """Return the canonical schema definition."""
    return {"schema_definition": _service(request).catalog.definition()}


@router.post("/upload/analyze")
async def analyze_upload(request: Request, ipdrFile: UploadFile | None = File(None)) -> dict:  # noqa: N803
    """Store an uploaded file and return its headers with a suggested mapping."""
    if ipdrFile is None:
        raise HTTPException(status_code=400, detail="Please upload a file.")

    service = _service(request)
    suffix = PurePath(ipdrFile.filename or "").suffix or ".csv"
    path = f"{uuid.uuid4().hex}{suffix}"
    data = await ipdrFile.read()
    try:
        await asyncio.to_thread(service.store_upload, path, data)
        result = await asyncio.to_thread(service.analyze, path)
    except IpdrIngestError as exc:
        logger.error("Failed to analyze upload %s: %s", ipdrFile.filename, exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Failed to analyze file.", "error": str(exc)},
        )

    return {
        "message": "File analyzed successfully. Please confirm the mapping.",
        **result.model_dump(mode="json"),
    }


@router.post("/upload/process", status_code=202)
async def process_upload(
    request: Request, body: ProcessRequest, background_tasks: BackgroundTasks
) -> dict:
    """Pre-flight the confirmed mapping, then transform and load in the background."""
    service = _service(request)
    try:
        job, mapping = await asyncio.to_thread(service.submit, body.file_path, body.confirmed_mapping)
    except PreflightError as exc:
        content: dict = {"message": "Cannot process file.", "violations": exc.violations}
        if exc.available_headers:
            content["available_headers"] = exc.available_headers
        return JSONResponse(status_code=400, content=content)
    except IpdrIngestError as exc:
        logger.error("Failed to pre-flight %s: %s", body.file_path, exc)
        return JSONResponse(
            status_code=400,
            content={"message": "Cannot process file.", "error": str(exc)},
        )

    background_tasks.add_task(service.execute, job.job_id, body.file_path, mapping)
    return {
        "message": f"Processing started for file: {body.file_path}",
        "job_id": job.job_id,
        "status": job.status,
    }


@router.get("/jobs/{job_id}")
async def get_job(request: Request, job_id: str) -> dict:
    job = _service(request).jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Unknown job {job_id}")
    return job.model_dump(mode="json")

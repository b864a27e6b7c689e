"""Job API: create a job of a given kind, poll its status, download outputs."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pydantic import TypeAdapter, ValidationError

from app.auth.supabase_auth import CurrentUser, get_current_user
from app.idempotency.route import IdempotentRoute
from app.jobs.models import JobInput, JobKind, JobRecord

router = APIRouter(route_class=IdempotentRoute)

# These will be set by main.py during lifespan
_gateway = None
_artifacts = None

_input_adapter = TypeAdapter(JobInput)


def set_gateway(gateway):
    global _gateway
    _gateway = gateway


def set_artifacts(store):
    global _artifacts
    _artifacts = store


def _require_gateway():
    if _gateway is None:
        raise HTTPException(status_code=503, detail="Job service not initialized")
    return _gateway


def job_status_payload(job: JobRecord) -> Dict[str, Any]:
    response = {
        "job_id": job.id,
        "kind": job.kind.value,
        "resource_id": job.resource_id,
        "status": job.status.value,
        "progress": job.progress,
        "result": job.result,
        "error": job.error,
        "created_at": job.created_at.isoformat(),
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }
    if job.output_files:
        response["output_files"] = job.output_files
    return response


@router.post("/jobs/{kind}")
async def create_job(
    kind: JobKind,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    user: CurrentUser = Depends(get_current_user),
):
    """Create a job. Returns immediately; poll GET /api/v1/jobs/{kind}/{job_id}."""
    gateway = _require_gateway()
    if kind == JobKind.JUDGE_EVALUATE:
        raise HTTPException(status_code=400, detail="Use POST /api/v1/judge/evaluate")

    try:
        job_input = _input_adapter.validate_python({**(payload or {}), "kind": kind.value})
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))

    job, created = await gateway.create_job(user.id, job_input)
    return JSONResponse(
        status_code=202 if created else 200,
        content={
            "job_id": job.id,
            "status": job.status.value,
            "progress": job.progress,
            "created": created,
            "message": (
                f"Job started. Poll GET /api/v1/jobs/{kind.value}/{job.id} for status."
                if created
                else "A job for this resource is already in progress."
            ),
        },
    )


@router.get("/jobs/{kind}/{job_id}")
async def get_job_status(kind: JobKind, job_id: str, user: CurrentUser = Depends(get_current_user)):
    job = await _require_gateway().get_status(job_id, user.id, kind)
    return job_status_payload(job)


@router.get("/jobs/{kind}/{job_id}/outputs/{filename}")
async def get_job_output(
    kind: JobKind,
    job_id: str,
    filename: str,
    user: CurrentUser = Depends(get_current_user),
):
    """Download a file produced by a completed job (e.g. a rendered PDF)."""
    job = await _require_gateway().get_status(job_id, user.id, kind)
    if _artifacts is None:
        raise HTTPException(status_code=503, detail="Artifact store not initialized")

    path = _artifacts.find(job.id, filename) if filename in job.output_files else None
    if path is None:
        raise HTTPException(status_code=404, detail="Output file not found")

    media_type = "application/pdf" if filename.endswith(".pdf") else "application/octet-stream"
    return FileResponse(path, media_type=media_type, filename=filename)

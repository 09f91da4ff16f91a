"""Job status and post-hoc CRM attach endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from legalscribe.errors import JobNotFoundError
from legalscribe.jobs.models import JobRecord, JobStatus, StageName, StageStatus

router = APIRouter()

# Set by main.py during lifespan
_dispatcher = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def status_payload(job: JobRecord) -> Dict[str, Any]:
    """Client-facing view of a job. Results only once completed, error only once failed."""
    response = {
        "job_id": job.id,
        "status": job.status.value,
        "stages": {
            name.value: state.model_dump(mode="json", exclude_none=True)
            for name, state in job.stages.items()
        },
        "metadata": job.metadata.model_dump(mode="json"),
        "created_at": job.created_at.isoformat(),
        "started_at": job.started_at.isoformat() if job.started_at else None,
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }

    if job.status == JobStatus.COMPLETED:
        response["transcription"] = job.results.transcription
        response["summary"] = job.results.summary

    if job.status == JobStatus.ERROR:
        response["error"] = job.error

    return response


@router.get("/status/{job_id}")
async def get_job_status(job_id: str):
    """Get the current status of a job. Never waits on the pipeline."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")

    job = await _dispatcher.get_status(job_id)
    if job is None:
        raise JobNotFoundError(job_id)

    return status_payload(job)


@router.post("/jobs/{job_id}/attach")
async def attach_to_crm(job_id: str):
    """Attach a completed job's transcript and summary to the CRM record.

    Unknown ids and jobs that have not completed are rejected by the
    dispatcher (JobNotFoundError / PreconditionFailedError).
    """
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Job dispatcher not initialized")

    job = await _dispatcher.attach(job_id)
    attach_state = job.stage(StageName.ATTACH)
    if attach_state.status != StageStatus.COMPLETED:
        raise HTTPException(status_code=500, detail=attach_state.error or "CRM attach failed")

    return {
        "success": True,
        "message": attach_state.message or "Attached to CRM",
        "stages": status_payload(job)["stages"],
    }

"""Audio upload endpoint.

  POST /process-audio   — receive an audio file plus case metadata, start a job

The upload is streamed to the uploads directory and handed to the
dispatcher; the response returns as soon as the job is registered.
"""

import logging
import os
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from legalscribe.config import settings
from legalscribe.jobs.models import JobMetadata, JobRecord
from legalscribe.storage.artifacts import artifact_store

logger = logging.getLogger(__name__)

router = APIRouter()

# Wired in during lifespan (same pattern as jobs.py)
_dispatcher = None


def set_dispatcher(dispatcher):
    global _dispatcher
    _dispatcher = dispatcher


def is_audio_upload(content_type: Optional[str], filename: Optional[str]) -> bool:
    """Browsers often send m4a as application/octet-stream, so accept it by name."""
    if content_type and content_type.startswith("audio/"):
        return True
    return bool(filename) and filename.lower().endswith(".m4a")


@router.post("/process-audio")
async def process_audio(
    audio: UploadFile = File(...),
    client_name: Optional[str] = Form(None),
    case_number: Optional[str] = Form(None),
    meeting_notes: Optional[str] = Form(None),
    attach_to_crm: bool = Form(False),
):
    """Accept an audio upload, persist it, and start a processing job.

    Returns:
        {job_id, message, status}
    """
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Dispatcher not ready")

    if not is_audio_upload(audio.content_type, audio.filename):
        raise HTTPException(status_code=400, detail="Only audio files are allowed")

    original_filename = audio.filename or "upload"
    upload_path = artifact_store.upload_path(str(uuid.uuid4()), original_filename)
    os.makedirs(os.path.dirname(upload_path) or ".", exist_ok=True)

    total = 0
    try:
        with open(upload_path, "wb") as dst:
            while True:
                chunk = await audio.read(1024 * 1024)  # 1 MB chunks
                if not chunk:
                    break
                total += len(chunk)
                if total > settings.max_upload_bytes:
                    dst.close()
                    os.remove(upload_path)
                    limit_mb = settings.max_upload_bytes // (1024 * 1024)
                    raise HTTPException(status_code=413, detail=f"File too large (max {limit_mb} MB)")
                dst.write(chunk)
    except HTTPException:
        raise
    except OSError as exc:
        logger.error("Upload error: %s", exc)
        artifact_store.remove_quietly(upload_path)
        raise HTTPException(status_code=500, detail="Failed to start processing")

    job = JobRecord(
        source_file_path=upload_path,
        metadata=JobMetadata(
            client_name=client_name or None,
            case_number=case_number or None,
            meeting_notes=meeting_notes or None,
            original_filename=original_filename,
            uploaded_at=datetime.utcnow(),
            attach_requested=attach_to_crm,
        ),
    )
    try:
        job_id = await _dispatcher.submit(job)
    except Exception:
        artifact_store.remove_quietly(upload_path)
        raise

    return {
        "job_id": job_id,
        "message": "Processing started",
        "status": job.status.value,
    }

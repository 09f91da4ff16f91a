"""Pipeline engine: drives one job through convert -> transcribe -> summarize -> attach.

The pipeline is an explicit state machine. ``next_stage`` reads a job record
and says which stage runs next; ``advance`` runs exactly that one stage and
writes every transition to the registry before returning. ``run`` simply
advances until nothing is left, then removes the transient WAV file.

Stage failures are recorded on the job and halt the pipeline. They are never
raised to the caller, who only learns about them through a status query.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from legalscribe.errors import (
    ArtifactFailure,
    JobNotFoundError,
    PreconditionFailedError,
    StageFailure,
    ToolFailure,
)
from legalscribe.jobs.models import (
    PIPELINE_STAGES,
    JobRecord,
    JobStatus,
    StageName,
    StageStatus,
)
from legalscribe.jobs.registry import JobRegistry
from legalscribe.logging_setup import log_stage
from legalscribe.storage.artifacts import ArtifactStore
from legalscribe.tools.attach import CrmAttacher
from legalscribe.tools.converter import AudioConverter
from legalscribe.tools.summarizer import Summarizer
from legalscribe.tools.transcriber import Transcriber

logger = logging.getLogger(__name__)


def next_stage(job: JobRecord) -> Optional[StageName]:
    """Return the stage that should run next, or None when the job is done."""
    if job.status == JobStatus.ERROR:
        return None
    if job.status in (JobStatus.STARTED, JobStatus.PROCESSING):
        for name in PIPELINE_STAGES:
            if job.stage(name).status == StageStatus.PENDING:
                return name
        return None
    # Completed: only the optional attach step may remain
    if job.metadata.attach_requested and job.stage(StageName.ATTACH).status == StageStatus.PENDING:
        return StageName.ATTACH
    return None


class PipelineEngine:
    """Runs pipeline stages for jobs held in a JobRegistry."""

    def __init__(
        self,
        registry: JobRegistry,
        store: ArtifactStore,
        converter: AudioConverter,
        transcriber: Transcriber,
        summarizer: Summarizer,
        attacher: CrmAttacher,
    ):
        self._registry = registry
        self._store = store
        self._converter = converter
        self._transcriber = transcriber
        self._summarizer = summarizer
        self._attacher = attacher
        # One writer per job: run() and attach() hold the job's lock
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def run(self, job_id: str) -> JobRecord:
        """Drive the job to a terminal state. Never raises for stage failures."""
        async with self._lock_for(job_id):
            try:
                while await self._advance(job_id) is not None:
                    pass
            finally:
                self._cleanup(job_id)
        return self._require(job_id)

    async def advance(self, job_id: str) -> Optional[StageName]:
        """Execute exactly one stage. Returns the stage run, or None if none was due."""
        async with self._lock_for(job_id):
            return await self._advance(job_id)

    async def attach(self, job_id: str) -> JobRecord:
        """Post-hoc CRM attach for a job that already completed."""
        job = self._require(job_id)
        if job.status != JobStatus.COMPLETED:
            raise PreconditionFailedError("Processing not completed")
        async with self._lock_for(job_id):
            job = self._require(job_id)
            await self._run_stage(job, StageName.ATTACH)
        return self._require(job_id)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _advance(self, job_id: str) -> Optional[StageName]:
        job = self._require(job_id)
        stage = next_stage(job)
        if stage is None:
            return None

        if job.status == JobStatus.STARTED:
            job.status = JobStatus.PROCESSING
            job.started_at = datetime.utcnow()
            self._registry.put(job)

        succeeded = await self._run_stage(job, stage)
        # The last pipeline stage just finished: the job is complete
        if succeeded and stage in PIPELINE_STAGES and next_stage(job) is None:
            job.status = JobStatus.COMPLETED
            job.completed_at = datetime.utcnow()
            self._registry.put(job)
            log_stage(job_id=job.id, stage="pipeline", event="completed")
        return stage

    async def _run_stage(self, job: JobRecord, stage: StageName) -> bool:
        job.set_stage(stage, StageStatus.PROCESSING)
        self._registry.put(job)
        log_stage(job_id=job.id, stage=stage.value, event="started")

        try:
            payload = await self._execute(job, stage)
        except StageFailure as exc:
            detail = exc.detail
            if exc.stderr:
                logger.error("Job %s %s stderr: %s", job.id, stage.value, exc.stderr)
        except asyncio.CancelledError:
            self._fail(job, stage, "Processing cancelled")
            raise
        except Exception as exc:
            logger.exception("Unexpected error in %s stage for job %s", stage.value, job.id)
            detail = f"{type(exc).__name__}: {exc}"
        else:
            job.set_stage(stage, StageStatus.COMPLETED, **payload)
            self._registry.put(job)
            log_stage(job_id=job.id, stage=stage.value, event="completed")
            return True

        self._fail(job, stage, detail)
        return False

    def _fail(self, job: JobRecord, stage: StageName, detail: str) -> None:
        job.set_stage(stage, StageStatus.ERROR, error=detail)
        # Attach is best-effort: its failure never reverts a completed job
        if stage != StageName.ATTACH:
            job.status = JobStatus.ERROR
            job.error = detail
            job.completed_at = datetime.utcnow()
        self._registry.put(job)
        log_stage(job_id=job.id, stage=stage.value, event="failed", error=detail)

    async def _execute(self, job: JobRecord, stage: StageName) -> Dict[str, Any]:
        """Call the stage's adapter, store results on the job, return the stage payload."""
        if stage == StageName.CONVERSION:
            output_path = self._store.converted_audio_path(job.id)
            wav_file = await self._converter.convert(job.source_file_path, output_path)
            job.results.wav_file = wav_file
            return {"output_path": wav_file}

        if stage == StageName.TRANSCRIPTION:
            text = await self._transcriber.transcribe(job.results.wav_file)
            try:
                path = self._store.save_transcript(text, job.metadata)
            except OSError as exc:
                raise ArtifactFailure(f"Failed to save transcript: {exc}") from exc
            logger.info("Transcript saved: %s", path)
            job.results.transcription = text
            job.results.transcript_path = path
            return {"output_path": path}

        if stage == StageName.SUMMARY:
            summary = await self._summarizer.summarize(job.results.transcription)
            path = None
            try:
                path = self._store.save_summary(summary, job.metadata)
                logger.info("Summary saved: %s", path)
            except OSError as exc:
                logger.error("Error saving summary for job %s: %s", job.id, exc)
            job.results.summary = summary
            job.results.summary_path = path
            return {"output_path": path}

        if stage == StageName.ATTACH:
            outcome = await self._attacher.attach(job)
            if not outcome.get("success"):
                raise ToolFailure(outcome.get("message") or "CRM attach failed")
            return {"message": outcome.get("message")}

        raise ValueError(f"Unknown stage: {stage}")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _cleanup(self, job_id: str) -> None:
        """Remove the transient WAV; failures are logged, never raised."""
        try:
            job = self._registry.get(job_id)
            wav_file = job.results.wav_file if job else None
            path = wav_file or self._store.converted_audio_path(job_id)
            if self._store.remove_quietly(path):
                logger.info("Removed transient audio %s", path)
        except Exception:
            logger.exception("Cleanup error for job %s", job_id)

    def _lock_for(self, job_id: str) -> asyncio.Lock:
        lock = self._locks.get(job_id)
        if lock is None:
            lock = self._locks[job_id] = asyncio.Lock()
        return lock

    def _require(self, job_id: str) -> JobRecord:
        job = self._registry.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

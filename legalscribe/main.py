"""LegalScribe - audio transcription and case summary service (FastAPI application)."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from legalscribe.config import Settings, settings
from legalscribe.errors import LegalScribeError
from legalscribe.logging_setup import configure_logging
from legalscribe.api.v1.router import v1_router
from legalscribe.api.v1.health import router as health_root_router
from legalscribe.api.v1 import jobs as jobs_api
from legalscribe.api.v1 import upload as upload_api
from legalscribe.jobs.in_process_queue import InProcessQueue
from legalscribe.jobs.models import JobRecord
from legalscribe.jobs.pipeline import PipelineEngine
from legalscribe.jobs.registry import JobRegistry
from legalscribe.storage.artifacts import ArtifactStore, artifact_store
from legalscribe.tools.attach import CrmAttacher
from legalscribe.tools.converter import AudioConverter
from legalscribe.tools.summarizer import Summarizer
from legalscribe.tools.transcriber import Transcriber

logger = logging.getLogger(__name__)


def build_engine(config: Settings, registry: JobRegistry, store: ArtifactStore) -> PipelineEngine:
    """Wire the tool adapters from settings into a pipeline engine."""
    timeout = config.stage_timeout_seconds
    return PipelineEngine(
        registry=registry,
        store=store,
        converter=AudioConverter(binary=config.ffmpeg_bin, timeout=timeout),
        transcriber=Transcriber(
            binary=config.whisper_bin,
            model_path=config.whisper_model_path,
            language=config.whisper_language,
            read_delay=config.transcript_read_delay_seconds,
            timeout=timeout,
        ),
        summarizer=Summarizer(binary=config.ollama_bin, model=config.ollama_model, timeout=timeout),
        attacher=CrmAttacher(delay=config.attach_delay_seconds),
    )


async def delete_upload(job: JobRecord) -> None:
    """Remove the uploaded source file once its job is terminal."""
    if artifact_store.remove_quietly(job.source_file_path):
        logger.info("Removed upload %s", job.source_file_path)


# Global dispatcher reference
_dispatcher = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    global _dispatcher

    configure_logging(settings.log_level)
    logger.info("Starting LegalScribe on port %s", settings.port)
    logger.info(
        "Tools: ffmpeg=%s whisper=%s ollama=%s (%s)",
        settings.ffmpeg_bin, settings.whisper_bin, settings.ollama_bin, settings.ollama_model,
    )

    artifact_store.ensure_dirs()
    logger.info(
        "Directories ready: %s, %s, %s, %s",
        artifact_store.uploads_dir, artifact_store.temp_dir,
        artifact_store.transcripts_dir, artifact_store.summaries_dir,
    )

    registry = JobRegistry()
    engine = build_engine(settings, registry, artifact_store)
    _dispatcher = InProcessQueue(
        registry=registry,
        engine=engine,
        max_concurrent_jobs=settings.max_concurrent_jobs,
    )
    if settings.delete_uploads_after_processing:
        _dispatcher.add_finished_callback(delete_upload)
    await _dispatcher.start()
    logger.info("Job dispatcher started")

    # Wire dispatcher into API endpoints
    jobs_api.set_dispatcher(_dispatcher)
    upload_api.set_dispatcher(_dispatcher)

    yield

    # Shutdown
    logger.info("Shutting down LegalScribe")
    await _dispatcher.stop()


app = FastAPI(
    title="LegalScribe",
    description="Legal audio transcription and case summary service",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(LegalScribeError)
async def legalscribe_error_handler(request: Request, exc: LegalScribeError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "error_code": exc.error_code},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(health_root_router, tags=["health"])  # GET /health at root
app.include_router(v1_router)  # All /api/v1/* endpoints


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()

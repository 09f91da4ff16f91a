"""Exception hierarchy for the transcription service.

Stage failures (``StageFailure`` and subclasses) are raised by the tool
adapters and caught by the pipeline engine, which records them on the job.
The remaining errors are raised at the submission/status boundary and are
mapped to HTTP responses by the handler installed in ``legalscribe.main``.
"""

from typing import Optional


class LegalScribeError(Exception):
    """Base exception for all application errors.

    Attributes:
        status_code: HTTP status code returned when raised in a handler.
        error_code: Machine-readable error identifier for clients.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class JobNotFoundError(LegalScribeError):
    """No job is registered under the requested identifier."""

    status_code = 404
    error_code = "JOB_NOT_FOUND"

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Process not found: {job_id}")
        self.job_id = job_id


class PreconditionFailedError(LegalScribeError):
    """The job is not in a state that allows the requested operation."""

    status_code = 409
    error_code = "PRECONDITION_FAILED"


class StageFailure(LegalScribeError):
    """A pipeline stage could not produce its output."""

    error_code = "STAGE_FAILED"

    def __init__(self, detail: str, stderr: Optional[str] = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.stderr = stderr


class LaunchFailure(StageFailure):
    """The external tool could not be started (missing or not executable)."""

    error_code = "LAUNCH_FAILURE"


class ToolFailure(StageFailure):
    """The tool ran but exited non-zero, reported an error, or timed out."""

    error_code = "TOOL_FAILURE"


class ArtifactFailure(StageFailure):
    """The expected output file was absent or unreadable after a clean exit."""

    error_code = "ARTIFACT_FAILURE"


class EmptyResultFailure(StageFailure):
    """The tool exited cleanly but produced no usable text."""

    error_code = "EMPTY_RESULT"

"""Job record data model for the audio processing pipeline."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


class JobStatus(str, Enum):
    STARTED = "started"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class StageName(str, Enum):
    CONVERSION = "conversion"
    TRANSCRIPTION = "transcription"
    SUMMARY = "summary"
    ATTACH = "attach"


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


# Stages every job must complete; attach is optional and runs afterwards.
PIPELINE_STAGES = (StageName.CONVERSION, StageName.TRANSCRIPTION, StageName.SUMMARY)

TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.ERROR)


class StageState(BaseModel):
    status: StageStatus = StageStatus.PENDING
    output_path: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None


class JobMetadata(BaseModel):
    """Submission metadata. Immutable once the job exists."""
    model_config = ConfigDict(frozen=True)

    client_name: Optional[str] = None
    case_number: Optional[str] = None
    meeting_notes: Optional[str] = None
    original_filename: str = "upload"
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    attach_requested: bool = False


class JobResults(BaseModel):
    wav_file: Optional[str] = None
    transcription: Optional[str] = None
    summary: Optional[str] = None
    transcript_path: Optional[str] = None
    summary_path: Optional[str] = None


def _initial_stages() -> Dict[StageName, StageState]:
    return {name: StageState() for name in StageName}


class JobRecord(BaseModel):
    """Tracks one uploaded file through conversion, transcription and summary."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source_file_path: str
    metadata: JobMetadata = Field(default_factory=JobMetadata)
    status: JobStatus = JobStatus.STARTED
    stages: Dict[StageName, StageState] = Field(default_factory=_initial_stages)
    results: JobResults = Field(default_factory=JobResults)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def stage(self, name: StageName) -> StageState:
        return self.stages[name]

    def set_stage(self, name: StageName, status: StageStatus, **payload: Any) -> None:
        """Replace a stage's state; payload keys are StageState fields."""
        self.stages[name] = StageState(status=status, **payload)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def failed_stage(self) -> Optional[StageName]:
        for name, state in self.stages.items():
            if state.status == StageStatus.ERROR:
                return name
        return None

"""On-disk layout for uploads, transient audio and durable text artifacts."""

import logging
import os
import re
from datetime import datetime
from typing import Optional

from legalscribe.config import settings
from legalscribe.jobs.models import JobMetadata

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9]")


def sanitize(value: str) -> str:
    """Replace every non-alphanumeric character with '-'."""
    return _UNSAFE_CHARS.sub("-", value)


def artifact_timestamp(now: Optional[datetime] = None) -> str:
    """UTC timestamp to the second, filesystem safe: 2026-10-19T08-15-02."""
    now = now or datetime.utcnow()
    return now.strftime("%Y-%m-%dT%H:%M:%S").replace(":", "-")


class ArtifactStore:
    """Manages the upload, temp, transcripts and summaries directories.

    Transcripts and summaries are durable and never removed by the service.
    Converted WAV files in the temp directory are removed once a job ends.
    """

    def __init__(
        self,
        uploads_dir: str = "uploads",
        temp_dir: str = "temp",
        transcripts_dir: str = "transcripts",
        summaries_dir: str = "summaries",
    ):
        self.uploads_dir = uploads_dir
        self.temp_dir = temp_dir
        self.transcripts_dir = transcripts_dir
        self.summaries_dir = summaries_dir

    def ensure_dirs(self) -> None:
        for path in (self.uploads_dir, self.temp_dir, self.transcripts_dir, self.summaries_dir):
            os.makedirs(path, exist_ok=True)

    def converted_audio_path(self, job_id: str) -> str:
        """Deterministic location of a job's converted WAV file."""
        return os.path.join(self.temp_dir, f"{job_id}.wav")

    def upload_path(self, token: str, original_filename: str) -> str:
        name = os.path.basename(original_filename) or "upload"
        return os.path.join(self.uploads_dir, f"{token}_{name}")

    def artifact_name(self, kind: str, metadata: JobMetadata, now: Optional[datetime] = None) -> str:
        """e.g. transcript_2026-10-19T08-15-02_Acme_123.txt"""
        parts = [kind, artifact_timestamp(now)]
        if metadata.client_name:
            parts.append(sanitize(metadata.client_name))
        if metadata.case_number:
            parts.append(sanitize(metadata.case_number))
        return "_".join(parts) + ".txt"

    def save_transcript(self, text: str, metadata: JobMetadata) -> str:
        return self._write_unique(self.transcripts_dir, self.artifact_name("transcript", metadata), text)

    def save_summary(self, text: str, metadata: JobMetadata) -> str:
        return self._write_unique(self.summaries_dir, self.artifact_name("summary", metadata), text)

    def remove_quietly(self, path: Optional[str]) -> bool:
        """Best-effort delete. Returns True if a file was removed."""
        if not path or not os.path.exists(path):
            return False
        try:
            os.remove(path)
        except OSError as exc:
            logger.warning("Cleanup error for %s: %s", path, exc)
            return False
        return True

    def _write_unique(self, directory: str, filename: str, text: str) -> str:
        os.makedirs(directory, exist_ok=True)
        stem, ext = os.path.splitext(filename)
        path = os.path.join(directory, filename)
        counter = 1
        while True:
            try:
                # "x" fails if another job already claimed this name
                with open(path, "x", encoding="utf-8") as f:
                    f.write(text)
                return path
            except FileExistsError:
                path = os.path.join(directory, f"{stem}-{counter}{ext}")
                counter += 1


# Global instance
artifact_store = ArtifactStore(
    uploads_dir=settings.uploads_dir,
    temp_dir=settings.temp_dir,
    transcripts_dir=settings.transcripts_dir,
    summaries_dir=settings.summaries_dir,
)

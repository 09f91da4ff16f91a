"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Storage directories
    uploads_dir: str = "uploads"
    temp_dir: str = "temp"
    transcripts_dir: str = "transcripts"
    summaries_dir: str = "summaries"

    # Audio conversion
    ffmpeg_bin: str = "ffmpeg"

    # Transcription
    whisper_bin: str = "whisper-cli"
    whisper_model_path: str = "models/ggml-base.en.bin"
    whisper_language: str = "en"
    transcript_read_delay_seconds: float = 1.0

    # Summarisation
    ollama_bin: str = "ollama"
    ollama_model: str = "gemma3:12b"

    # CRM attach (placeholder integration)
    attach_delay_seconds: float = 1.0

    # Uploads
    max_upload_bytes: int = 500 * 1024 * 1024
    delete_uploads_after_processing: bool = False

    # Job processing (None = unbounded / no timeout)
    max_concurrent_jobs: Optional[int] = None
    stage_timeout_seconds: Optional[float] = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

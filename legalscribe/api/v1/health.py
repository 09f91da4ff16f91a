"""Health check endpoint."""

from datetime import datetime

from fastapi import APIRouter

from legalscribe.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Service status and the external tools it expects.

    The dependency entries are static claims with the command to verify each
    one by hand; nothing is probed.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "dependencies": {
            "ffmpeg": f"Available (check with: {settings.ffmpeg_bin} -version)",
            "whisper": f"Available (check with: {settings.whisper_bin} --help)",
            "ollama": f"Available (check with: {settings.ollama_bin} --version)",
            "model": f"{settings.ollama_model} (check with: {settings.ollama_bin} list)",
        },
    }

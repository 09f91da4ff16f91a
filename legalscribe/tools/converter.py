"""Audio conversion via ffmpeg.

Whisper expects 16 kHz mono PCM WAV, so every upload (m4a, mp3, ...) is
converted first regardless of its original format.
"""

import logging
import os
from typing import Optional

from legalscribe.errors import ArtifactFailure, ToolFailure
from legalscribe.tools.process import ProcessRunner

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16_000


class AudioConverter:
    """Converts an uploaded audio file to a 16 kHz mono WAV file."""

    def __init__(
        self,
        binary: str = "ffmpeg",
        runner: Optional[ProcessRunner] = None,
        timeout: Optional[float] = None,
    ):
        self._binary = binary
        self._runner = runner or ProcessRunner()
        self._timeout = timeout

    def build_command(self, source_path: str, output_path: str) -> list:
        return [
            self._binary,
            "-i", source_path,
            "-acodec", "pcm_s16le",
            "-ar", str(TARGET_SAMPLE_RATE),
            "-ac", "1",
            output_path,
            "-y",  # overwrite output
        ]

    async def convert(self, source_path: str, output_path: str) -> str:
        """Convert ``source_path`` into ``output_path`` and return the output path."""
        result = await self._runner.run(
            self.build_command(source_path, output_path), timeout=self._timeout
        )
        if not result.ok:
            logger.error("ffmpeg stderr: %s", result.stderr_tail())
            raise ToolFailure(
                f"FFmpeg conversion failed with code {result.returncode}",
                stderr=result.stderr_tail(),
            )
        if not os.path.exists(output_path):
            raise ArtifactFailure(f"FFmpeg produced no output file at {output_path}")
        return output_path

"""Speech-to-text via whisper-cli (whisper.cpp)."""

import asyncio
import logging
import os
from typing import Optional

from legalscribe.errors import ArtifactFailure, ToolFailure
from legalscribe.tools.process import ProcessRunner

logger = logging.getLogger(__name__)


class Transcriber:
    """Runs whisper-cli on a WAV file and returns the transcript text.

    With ``--output-txt`` whisper-cli writes ``<wav>.txt`` next to the input.
    The file is not always visible the instant the process exits, so the
    adapter waits ``read_delay`` seconds before reading it, then removes it.
    """

    def __init__(
        self,
        binary: str = "whisper-cli",
        model_path: str = "models/ggml-base.en.bin",
        language: str = "en",
        read_delay: float = 1.0,
        runner: Optional[ProcessRunner] = None,
        timeout: Optional[float] = None,
    ):
        self._binary = binary
        self._model_path = model_path
        self._language = language
        self._read_delay = read_delay
        self._runner = runner or ProcessRunner()
        self._timeout = timeout

    def build_command(self, wav_path: str) -> list:
        return [
            self._binary,
            "-m", self._model_path,
            "--output-txt",
            "--no-timestamps",
            "--language", self._language,
            wav_path,
        ]

    @staticmethod
    def output_path_for(wav_path: str) -> str:
        return wav_path + ".txt"

    async def transcribe(self, wav_path: str) -> str:
        result = await self._runner.run(self.build_command(wav_path), timeout=self._timeout)
        if not result.ok:
            logger.error("whisper-cli stderr: %s", result.stderr_tail())
            logger.error("whisper-cli stdout: %s", result.stdout.strip()[-2000:])
            raise ToolFailure(
                f"Whisper-cli failed with code {result.returncode}",
                stderr=result.stderr_tail(),
            )

        if self._read_delay > 0:
            await asyncio.sleep(self._read_delay)

        txt_path = self.output_path_for(wav_path)
        try:
            with open(txt_path, "r", encoding="utf-8") as f:
                text = f.read().strip()
        except OSError as exc:
            raise ArtifactFailure(f"Failed to read transcript file: {exc}") from exc

        try:
            os.remove(txt_path)
        except OSError as exc:
            logger.warning("Could not remove raw transcript %s: %s", txt_path, exc)

        if not text:
            # Silent recordings are valid; the summary stage still runs
            logger.warning("Whisper-cli produced an empty transcript for %s", wav_path)
        return text

"""Legal case-file summarisation via a local LLM (``ollama run``)."""

import logging
from typing import Optional

from legalscribe.errors import EmptyResultFailure, ToolFailure
from legalscribe.tools.process import ProcessRunner

logger = logging.getLogger(__name__)

SUMMARY_SECTIONS = (
    "Case Information",
    "Key Testimony",
    "Evidence Presented",
    "Notable Rulings",
    "Action Items",
)

LEGAL_PROMPT = """**Situation** You are an expert legal secretary working in a law firm environment where case documentation and file management are critical to legal proceedings. You need to process court transcripts and depositions to create concise summaries for case file integration.

**Task** Analyze the provided transcript and create a structured summary suitable for inclusion in a legal case file. Extract key information, identify critical testimony, and organize findings in a format that legal professionals can quickly reference.

**Objective** Create a professional case file summary that enables legal team members to quickly understand the transcript's key points, evidence presented, and testimony given without reading the full document.

**Knowledge** Legal transcripts typically contain:
- Witness testimony under oath
- Attorney questioning (direct and cross-examination)
- Judicial rulings and objections
- Evidence presentations
- Procedural matters

Case file summaries must maintain accuracy and legal precision while condensing information. The summary should preserve the legal significance of statements and maintain chronological flow when relevant.

**Instructions**
1. Create a summary between 300-500 words maximum
2. Structure the output with clear headings: {sections}
3. Use objective, professional language appropriate for legal documentation
4. Identify each witness by name and role when summarizing their testimony
5. When conflicting testimony occurs, note both positions without editorial commentary

**Transcript to Analyze:**
{transcript}"""


def build_prompt(transcription: str) -> str:
    sections = ", ".join(SUMMARY_SECTIONS[:-1]) + ", and " + SUMMARY_SECTIONS[-1]
    return LEGAL_PROMPT.format(sections=sections, transcript=transcription)


class Summarizer:
    """Pipes the legal prompt to ``ollama run <model>`` and returns stdout."""

    def __init__(
        self,
        binary: str = "ollama",
        model: str = "gemma3:12b",
        runner: Optional[ProcessRunner] = None,
        timeout: Optional[float] = None,
    ):
        self._binary = binary
        self._model = model
        self._runner = runner or ProcessRunner()
        self._timeout = timeout

    def build_command(self) -> list:
        return [self._binary, "run", self._model]

    async def summarize(self, transcription: str) -> str:
        result = await self._runner.run(
            self.build_command(),
            stdin=build_prompt(transcription),
            timeout=self._timeout,
        )
        if not result.ok:
            logger.error("ollama stderr: %s", result.stderr_tail())
            raise ToolFailure(
                f"Summary generation failed: ollama exited with code {result.returncode}",
                stderr=result.stderr_tail(),
            )
        summary = result.stdout.strip()
        if not summary:
            logger.error("ollama stderr: %s", result.stderr_tail())
            raise EmptyResultFailure("Summary generation failed: ollama returned no output")
        return summary

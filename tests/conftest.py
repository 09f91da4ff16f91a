"""Shared fixtures: stub tool adapters, fake process runner, temp artifact store."""

import asyncio
from typing import List, Optional, Sequence

import pytest

from legalscribe.errors import LaunchFailure, StageFailure
from legalscribe.jobs.models import JobMetadata, JobRecord
from legalscribe.jobs.pipeline import PipelineEngine
from legalscribe.jobs.registry import JobRegistry
from legalscribe.storage.artifacts import ArtifactStore
from legalscribe.tools.process import ProcessResult


class FakeRunner:
    """ProcessRunner double: records argv/stdin and returns a canned result."""

    def __init__(self, result: Optional[ProcessResult] = None, error: Optional[Exception] = None, on_run=None):
        self.result = result or ProcessResult(returncode=0, stdout="", stderr="")
        self.error = error
        self.on_run = on_run
        self.calls: List[dict] = []

    async def run(self, argv: Sequence[str], stdin: Optional[str] = None, timeout: Optional[float] = None):
        self.calls.append({"argv": list(argv), "stdin": stdin, "timeout": timeout})
        if self.on_run is not None:
            self.on_run(list(argv))
        if self.error is not None:
            raise self.error
        return self.result


class StubConverter:
    def __init__(self, error: Optional[StageFailure] = None):
        self.error = error
        self.calls = 0

    async def convert(self, source_path: str, output_path: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        with open(output_path, "wb") as f:
            f.write(b"RIFF")
        return output_path


class StubTranscriber:
    def __init__(self, text: str = "HELLO", error: Optional[StageFailure] = None):
        self.text = text
        self.error = error
        self.calls = 0

    async def transcribe(self, wav_path: str) -> str:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.text


class StubSummarizer:
    def __init__(self, text: str = "SUMMARY TEXT", error: Optional[Exception] = None, gate: Optional[asyncio.Event] = None):
        self.text = text
        self.error = error
        self.gate = gate
        self.calls = 0
        self.inputs: List[str] = []

    async def summarize(self, transcription: str) -> str:
        self.calls += 1
        self.inputs.append(transcription)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.text


class StubAttacher:
    def __init__(self, success: bool = True):
        self.success = success
        self.calls = 0

    async def attach(self, job: JobRecord) -> dict:
        self.calls += 1
        if not self.success:
            return {"success": False, "message": "CRM rejected the upload"}
        return {"success": True, "message": "Attached to CRM successfully"}


class Harness:
    """A registry + engine wired to stub adapters."""

    def __init__(self, store: ArtifactStore, **stubs):
        self.store = store
        self.registry = JobRegistry()
        self.converter = stubs.get("converter") or StubConverter()
        self.transcriber = stubs.get("transcriber") or StubTranscriber()
        self.summarizer = stubs.get("summarizer") or StubSummarizer()
        self.attacher = stubs.get("attacher") or StubAttacher()
        self.engine = PipelineEngine(
            registry=self.registry,
            store=store,
            converter=self.converter,
            transcriber=self.transcriber,
            summarizer=self.summarizer,
            attacher=self.attacher,
        )

    def new_job(self, **metadata) -> JobRecord:
        source = self.store.upload_path("abc", "hearing.m4a")
        with open(source, "wb") as f:
            f.write(b"audio")
        job = JobRecord(source_file_path=source, metadata=JobMetadata(original_filename="hearing.m4a", **metadata))
        self.registry.put(job)
        return job


@pytest.fixture
def store(tmp_path):
    s = ArtifactStore(
        uploads_dir=str(tmp_path / "uploads"),
        temp_dir=str(tmp_path / "temp"),
        transcripts_dir=str(tmp_path / "transcripts"),
        summaries_dir=str(tmp_path / "summaries"),
    )
    s.ensure_dirs()
    return s


@pytest.fixture
def make_harness(store):
    def _make(**stubs) -> Harness:
        return Harness(store, **stubs)
    return _make


@pytest.fixture
def launch_failure():
    return LaunchFailure("Failed to start whisper-cli: [Errno 2] No such file or directory")

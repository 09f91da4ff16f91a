"""Tests for the job record, registry and in-process dispatcher."""

import asyncio
import threading

import pytest

from legalscribe.jobs.in_process_queue import InProcessQueue
from legalscribe.jobs.models import JobMetadata, JobRecord, JobStatus, StageName, StageStatus
from legalscribe.jobs.registry import JobRegistry

from conftest import StubSummarizer


class TestJobRecord:
    def test_new_record_defaults(self):
        job = JobRecord(source_file_path="uploads/x.m4a")
        assert job.status == JobStatus.STARTED
        assert list(job.stages) == [
            StageName.CONVERSION, StageName.TRANSCRIPTION, StageName.SUMMARY, StageName.ATTACH,
        ]
        assert all(s.status == StageStatus.PENDING for s in job.stages.values())
        assert job.failed_stage() is None
        assert not job.is_terminal

    def test_ids_are_unique(self):
        ids = {JobRecord(source_file_path="x").id for _ in range(50)}
        assert len(ids) == 50

    def test_metadata_is_frozen(self):
        meta = JobMetadata(client_name="Acme")
        with pytest.raises(Exception):
            meta.client_name = "Other"


class TestJobRegistry:
    def test_unknown_id_returns_none(self):
        assert JobRegistry().get("missing") is None

    def test_put_then_get(self):
        registry = JobRegistry()
        job = JobRecord(source_file_path="x")
        registry.put(job)
        assert registry.get(job.id).id == job.id
        assert job.id in registry
        assert len(registry) == 1
        assert registry.ids() == [job.id]

    def test_get_returns_snapshot(self):
        registry = JobRegistry()
        job = JobRecord(source_file_path="x")
        registry.put(job)

        # Unsaved mutation is not visible
        job.set_stage(StageName.CONVERSION, StageStatus.PROCESSING)
        assert registry.get(job.id).stage(StageName.CONVERSION).status == StageStatus.PENDING

        # Mutating a snapshot does not leak back either
        snap = registry.get(job.id)
        snap.status = JobStatus.ERROR
        assert registry.get(job.id).status == JobStatus.STARTED

    def test_concurrent_readers_and_writers(self):
        registry = JobRegistry()
        jobs = [JobRecord(source_file_path=f"{i}.m4a") for i in range(20)]
        for job in jobs:
            registry.put(job)
        errors = []

        def writer(job):
            for name in (StageName.CONVERSION, StageName.TRANSCRIPTION, StageName.SUMMARY):
                job.set_stage(name, StageStatus.COMPLETED)
                registry.put(job)

        def reader():
            for _ in range(200):
                for job in jobs:
                    if registry.get(job.id) is None:
                        errors.append(job.id)

        threads = [threading.Thread(target=writer, args=(j,)) for j in jobs]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        for job in jobs:
            assert registry.get(job.id).stage(StageName.SUMMARY).status == StageStatus.COMPLETED


class TestInProcessQueue:
    def test_submit_returns_before_pipeline_finishes(self, make_harness):
        gate = asyncio.Event()
        h = make_harness(summarizer=StubSummarizer(gate=gate))

        async def scenario():
            queue = InProcessQueue(registry=h.registry, engine=h.engine)
            await queue.start()
            job = h.new_job(client_name="Acme", case_number="123")
            job_id = await queue.submit(job)
            first = await queue.get_status(job_id)
            gate.set()
            await queue.join()
            final = await queue.get_status(job_id)
            await queue.stop()
            return first, final

        first, final = asyncio.run(scenario())

        assert first.status in (JobStatus.STARTED, JobStatus.PROCESSING)
        assert final.status == JobStatus.COMPLETED
        assert final.results.transcription == "HELLO"
        assert final.results.summary == "SUMMARY TEXT"

    def test_submit_requires_started_dispatcher(self, make_harness):
        h = make_harness()
        queue = InProcessQueue(registry=h.registry, engine=h.engine)
        with pytest.raises(RuntimeError):
            asyncio.run(queue.submit(JobRecord(source_file_path="x")))

    def test_concurrency_cap(self, make_harness):
        gate = asyncio.Event()
        h = make_harness(summarizer=StubSummarizer(gate=gate))

        async def scenario():
            queue = InProcessQueue(registry=h.registry, engine=h.engine, max_concurrent_jobs=1)
            await queue.start()
            a = await queue.submit(h.new_job())
            b = await queue.submit(h.new_job())
            while h.summarizer.calls == 0:
                await asyncio.sleep(0)
            for _ in range(10):
                await asyncio.sleep(0)
            waiting = await queue.get_status(b)
            gate.set()
            await queue.join()
            await queue.stop()
            return waiting, await queue.get_status(a), await queue.get_status(b)

        waiting, a, b = asyncio.run(scenario())

        assert waiting.status == JobStatus.STARTED
        assert a.status == JobStatus.COMPLETED
        assert b.status == JobStatus.COMPLETED

    def test_finished_callbacks_receive_final_record(self, make_harness):
        h = make_harness()
        finished = []

        async def on_finished(record):
            finished.append(record)

        async def scenario():
            queue = InProcessQueue(registry=h.registry, engine=h.engine)
            queue.add_finished_callback(on_finished)
            await queue.start()
            job_id = await queue.submit(h.new_job())
            await queue.join()
            await queue.stop()
            return job_id

        job_id = asyncio.run(scenario())

        assert [r.id for r in finished] == [job_id]
        assert finished[0].status == JobStatus.COMPLETED

    def test_stop_cancels_running_jobs(self, make_harness):
        gate = asyncio.Event()
        h = make_harness(summarizer=StubSummarizer(gate=gate))

        async def scenario():
            queue = InProcessQueue(registry=h.registry, engine=h.engine)
            await queue.start()
            job_id = await queue.submit(h.new_job())
            while h.summarizer.calls == 0:
                await asyncio.sleep(0)
            await queue.stop()
            return await queue.get_status(job_id)

        record = asyncio.run(scenario())

        assert record.status == JobStatus.ERROR
        assert record.stage(StageName.SUMMARY).error == "Processing cancelled"

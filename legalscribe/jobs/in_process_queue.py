"""In-process job dispatcher using asyncio tasks.

Each submitted job gets its own task running the pipeline engine, so jobs
overlap freely and submission never waits on processing. An optional
semaphore bounds how many pipelines run at once.
No external dependencies (Redis, Celery) needed.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from legalscribe.jobs.dispatcher import JobDispatcher
from legalscribe.jobs.models import JobRecord
from legalscribe.jobs.pipeline import PipelineEngine
from legalscribe.jobs.registry import JobRegistry

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[JobRecord], Awaitable[None]]


class InProcessQueue(JobDispatcher):
    """Local async dispatcher. One pipeline task per job."""

    def __init__(
        self,
        registry: JobRegistry,
        engine: PipelineEngine,
        max_concurrent_jobs: Optional[int] = None,
    ):
        self._registry = registry
        self._engine = engine
        self._tasks: Set[asyncio.Task] = set()
        self._semaphore = asyncio.Semaphore(max_concurrent_jobs) if max_concurrent_jobs else None
        self._on_finished: List[FinishedCallback] = []
        self._running = False

    def add_finished_callback(self, callback: FinishedCallback) -> None:
        """Register a coroutine called with the final record of every job."""
        self._on_finished.append(callback)

    async def submit(self, job: JobRecord) -> str:
        if not self._running:
            raise RuntimeError("Dispatcher is not running")
        self._registry.put(job)
        task = asyncio.create_task(self._process(job.id), name=f"pipeline-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Job %s submitted (%s)", job.id, job.metadata.original_filename)
        return job.id

    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        return self._registry.get(job_id)

    async def attach(self, job_id: str) -> JobRecord:
        return await self._engine.attach(job_id)

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def join(self) -> None:
        """Wait until every submitted job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _process(self, job_id: str) -> None:
        if self._semaphore is not None:
            async with self._semaphore:
                record = await self._engine.run(job_id)
        else:
            record = await self._engine.run(job_id)

        for callback in self._on_finished:
            try:
                await callback(record)
            except Exception:
                logger.exception("Finished callback failed for job %s", job_id)

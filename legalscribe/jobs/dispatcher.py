"""Job dispatcher interface."""

from abc import ABC, abstractmethod
from typing import Optional

from legalscribe.jobs.models import JobRecord


class JobDispatcher(ABC):
    """Abstract interface for submitting jobs and reading their progress."""

    @abstractmethod
    async def submit(self, job: JobRecord) -> str:
        """Register a job and start processing it. Returns job_id immediately."""
        ...

    @abstractmethod
    async def get_status(self, job_id: str) -> Optional[JobRecord]:
        """Get a snapshot of a job, or None if the id is unknown."""
        ...

    @abstractmethod
    async def attach(self, job_id: str) -> JobRecord:
        """Run the CRM attach stage for a completed job."""
        ...

    @abstractmethod
    async def start(self) -> None:
        """Start the dispatcher."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the dispatcher gracefully."""
        ...

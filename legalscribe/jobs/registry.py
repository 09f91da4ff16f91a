"""Thread-safe in-memory job registry."""

import threading
from typing import Dict, List, Optional

from legalscribe.jobs.models import JobRecord


class JobRegistry:
    """Keyed store of job id -> JobRecord for the lifetime of the process.

    - put() stores a private copy, so later mutation of the caller's record
      is invisible until the next put()
    - get() returns a snapshot, so readers never observe a half-applied
      stage update
    - records are never evicted
    """

    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = threading.Lock()

    def put(self, record: JobRecord) -> None:
        snapshot = record.model_copy(deep=True)
        with self._lock:
            self._jobs[record.id] = snapshot

    def get(self, job_id: str) -> Optional[JobRecord]:
        """Return a snapshot of the job, or None if the id is unknown."""
        with self._lock:
            record = self._jobs.get(job_id)
        if record is None:
            return None
        return record.model_copy(deep=True)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

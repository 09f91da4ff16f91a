"""Attach transcript and summary to the client's CRM record.

Placeholder for the client-record system integration: the real version
would upload both artifacts to the contact/deal matching the client name
and case number. Until then the call only simulates the API latency.
"""

import asyncio
import logging
from typing import Any, Dict

from legalscribe.jobs.models import JobRecord

logger = logging.getLogger(__name__)


class CrmAttacher:

    def __init__(self, delay: float = 1.0):
        self._delay = delay

    async def attach(self, job: JobRecord) -> Dict[str, Any]:
        logger.info(
            "Attaching job %s to CRM record (client=%s, case=%s)",
            job.id, job.metadata.client_name, job.metadata.case_number,
        )
        await asyncio.sleep(self._delay)
        return {"success": True, "message": "Attached to CRM successfully"}

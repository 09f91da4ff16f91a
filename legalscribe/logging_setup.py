"""Logging configuration and structured stage events."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

stage_logger = logging.getLogger("legalscribe.stage")

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    global _configured
    root = logging.getLogger()
    root.setLevel(level.upper())
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    _configured = True


def log_stage(job_id: str, stage: str, event: str, error: Optional[str] = None) -> None:
    """Emit one JSON line per stage transition on the ``legalscribe.stage`` logger.

    Failures go out at ERROR so they surface without enabling INFO.
    """
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "job_id": job_id,
        "stage": stage,
        "event": event.upper(),
    }
    if error:
        payload["error"] = error
        stage_logger.error("stage_event %s", json.dumps(payload, ensure_ascii=False))
    else:
        stage_logger.info("stage_event %s", json.dumps(payload, ensure_ascii=False))

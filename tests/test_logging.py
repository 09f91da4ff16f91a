"""Tests for stage event logging."""

import json
import logging

from legalscribe.logging_setup import log_stage


def _payload(record):
    return json.loads(record.getMessage().split(" ", 1)[1])


def test_stage_event_is_json_at_info(caplog):
    with caplog.at_level(logging.INFO, logger="legalscribe.stage"):
        log_stage("job-1", "conversion", "started")

    record = caplog.records[-1]
    assert record.levelno == logging.INFO
    payload = _payload(record)
    assert payload["job_id"] == "job-1"
    assert payload["stage"] == "conversion"
    assert payload["event"] == "STARTED"
    assert "error" not in payload


def test_failed_stage_event_logs_error(caplog):
    with caplog.at_level(logging.INFO, logger="legalscribe.stage"):
        log_stage("job-1", "summary", "failed", error="ollama exited with code 1")

    record = caplog.records[-1]
    assert record.levelno == logging.ERROR
    assert _payload(record)["error"] == "ollama exited with code 1"

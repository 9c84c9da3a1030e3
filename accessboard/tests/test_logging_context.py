"""Tests for structured logging, timing and request_id propagation."""

import json
import logging

import pytest
from fastapi.testclient import TestClient

from accessboard.core.logging import (
    JsonFormatter,
    get_request_id_from_headers,
    latency_bucket_ms,
    log_event,
    timed,
)
from accessboard.main import app

logger = logging.getLogger("accessboard")


def test_request_id_in_response_and_logs(caplog):
    client = TestClient(app)
    with caplog.at_level(logging.INFO, logger="accessboard"):
        response = client.get("/healthz")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert any(r.getMessage() == "request.complete" for r in records)


def test_request_id_in_error_response():
    client = TestClient(app)
    response = client.get("/api/does-not-exist")
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert rid
    payload = response.json()
    assert payload["error"]["request_id"] == rid
    assert payload["error"]["code"] == "not_found"


def test_alternate_correlation_headers():
    assert get_request_id_from_headers({"x-requestid": "abc"}) == "abc"
    assert get_request_id_from_headers({"x-amzn-trace-id": "Root=1-xyz"}) == "Root=1-xyz"
    assert get_request_id_from_headers({}) is None

    client = TestClient(app)
    response = client.get("/healthz", headers={"x-amzn-trace-id": "trace-1"})
    assert response.headers["x-request-id"] == "trace-1"


def test_timed_logs_fast_operations_at_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger="accessboard"):
        with timed(logger, "scan.fast", slow_ms=60_000):
            pass
    record = next(r for r in caplog.records if r.getMessage() == "operation_timing")
    assert record.levelno == logging.DEBUG
    assert record.op == "scan.fast"


def test_timed_warns_on_slow_operations(caplog):
    with caplog.at_level(logging.DEBUG, logger="accessboard"):
        with timed(logger, "scan.slow", slow_ms=0):
            pass
    record = next(r for r in caplog.records if r.getMessage() == "slow_operation")
    assert record.levelno == logging.WARNING
    assert record.duration_ms >= 0


def test_timed_logs_and_reraises_failures(caplog):
    with caplog.at_level(logging.DEBUG, logger="accessboard"):
        with pytest.raises(RuntimeError):
            with timed(logger, "scan.broken"):
                raise RuntimeError("boom")
    record = next(r for r in caplog.records if r.getMessage() == "operation_failed")
    assert record.levelno == logging.ERROR
    assert record.error == "boom"


def test_log_event_truncates_extra(caplog):
    with caplog.at_level(logging.INFO, logger="accessboard"):
        log_event("info", "entries.served", request_id="rid-1", username="alice", period="day", extra={"blob": "x" * 2000})
    record = next(r for r in caplog.records if r.getMessage() == "entries.served")
    assert record.request_id == "rid-1"
    assert record.username == "alice"
    assert len(record.blob) <= 520


def test_json_formatter_includes_extras():
    record = logging.LogRecord("accessboard", logging.INFO, __file__, 1, "hello", (), None)
    record.request_id = "rid-2"
    record.lock_id = "L1"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello"
    assert payload["request_id"] == "rid-2"
    assert payload["lock_id"] == "L1"
    assert payload["level"] == "INFO"


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(5000) == ">=1000ms"


def test_timed_defaults_to_configured_slow_threshold(caplog, monkeypatch):
    monkeypatch.setattr("accessboard.core.logging.settings.SLOW_QUERY_MS", 0)
    with caplog.at_level(logging.DEBUG, logger="accessboard"):
        with timed(logger, "scan.configured"):
            pass
    record = next(r for r in caplog.records if r.getMessage() == "slow_operation")
    assert record.op == "scan.configured"

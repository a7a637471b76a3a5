"""Tests for request-scoped logging and session lifecycle."""

import io
import json
import logging

import pytest

from ortoqbank.core.config import settings
from ortoqbank.core.logging import bind_request_id, build_handler, reset_request_id
from ortoqbank.db import session as session_module


def _emit(handler: logging.Handler, stream: io.StringIO, **extra) -> dict:
    logger = logging.getLogger("ortoqbank.tests.logging")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    try:
        logger.info("answer_recorded", extra=extra)
    finally:
        logger.removeHandler(handler)
    return json.loads(stream.getvalue().strip().splitlines()[-1])


def test_records_carry_bound_request_id():
    stream = io.StringIO()
    token = bind_request_id("req-123")
    try:
        record = _emit(build_handler(stream), stream, question_id=7)
    finally:
        reset_request_id(token)

    assert record["event"] == "answer_recorded"
    assert record["request_id"] == "req-123"
    assert record["question_id"] == 7
    assert record["service"] == settings.PROJECT_NAME
    assert record["env"] == settings.ENV
    assert "message" not in record


def test_records_outside_a_request_have_no_request_id():
    stream = io.StringIO()
    record = _emit(build_handler(stream), stream)
    assert "request_id" not in record
    assert record["level"] == "INFO"


class _RecordingSession:
    def __init__(self):
        self.calls = []

    def rollback(self):
        self.calls.append("rollback")

    def close(self):
        self.calls.append("close")


def test_open_session_rolls_back_on_error(monkeypatch):
    fake = _RecordingSession()
    monkeypatch.setattr(session_module, "SessionLocal", lambda: fake)

    with pytest.raises(RuntimeError):
        with session_module.open_session():
            raise RuntimeError("boom")
    assert fake.calls == ["rollback", "close"]


def test_open_session_closes_on_success(monkeypatch):
    fake = _RecordingSession()
    monkeypatch.setattr(session_module, "SessionLocal", lambda: fake)

    with session_module.open_session() as db:
        assert db is fake
    assert fake.calls == ["close"]

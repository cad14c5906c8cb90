"""Unit tests for structured JSON logging."""
import sys
sys.path.insert(0, 'backend')

import json
import logging

import pytest
from logger import JSONFormatter, setup_logging


def make_record(message, *args, **extra):
    record = logging.LogRecord("services.test", logging.INFO, __file__, 1, message, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record("Search resolved: tier=%s", "llm")))
        assert data["level"] == "INFO"
        assert data["logger"] == "services.test"
        assert data["message"] == "Search resolved: tier=llm"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields(self):
        data = json.loads(JSONFormatter().format(make_record("hit", session_id="sess_abc", status_code=502)))
        assert data["session_id"] == "sess_abc"
        assert data["status_code"] == 502

    def test_redacts_pii(self):
        record = make_record("user wrote 123-45-6789", contact="jane@example.com")
        output = JSONFormatter().format(record)
        assert "123-45-6789" not in output
        assert "jane@example.com" not in output

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in data["exception"]


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_single_json_handler(self):
        setup_logging("debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

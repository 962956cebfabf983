"""Tests for logging setup and environment settings."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import logging

import pytest

from config.observability import JSONFormatter, setup_logging
from config.settings import Settings, get_settings
from engine.errors import CapacityExceeded, ConflictError, LeasingError


def make_record(msg="Assigned", **extra):
    record = logging.LogRecord("engine.allocation_engine", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        line = JSONFormatter().format(make_record("Kapasite Aşımı"))
        data = json.loads(line)
        assert data["level"] == "INFO"
        assert data["logger"] == "engine.allocation_engine"
        assert data["message"] == "Kapasite Aşımı"
        assert "timestamp" in data

    def test_context_fields(self):
        data = json.loads(JSONFormatter().format(make_record(unit_id="u1", floor="3", unrelated="x")))
        assert data["unit_id"] == "u1"
        assert data["floor"] == "3"
        assert "unrelated" not in data

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestSetupLogging:
    def test_json_handler_installed(self):
        before = list(logging.root.handlers)
        level = logging.root.level
        try:
            setup_logging("debug", "json")
            added = [h for h in logging.root.handlers if h not in before]
            assert len(added) == 1
            assert isinstance(added[0].formatter, JSONFormatter)
            assert logging.root.level == logging.DEBUG
        finally:
            for handler in logging.root.handlers[:]:
                if handler not in before:
                    logging.root.removeHandler(handler)
            logging.root.setLevel(level)


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LEASING_API_BASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.api_base_url == "http://localhost:3001/api"
        assert settings.log_format == "text"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("LEASING_API_BASE_URL", "https://leasing.example/api/")
        monkeypatch.setenv("LEASING_API_TIMEOUT_SECONDS", "5")
        settings = Settings(_env_file=None)
        assert settings.api_base_url == "https://leasing.example/api"
        assert settings.api_timeout_seconds == 5.0

    def test_cached(self):
        assert get_settings() is get_settings()


class TestErrorPayloads:
    def test_capacity_payload(self):
        data = CapacityExceeded(600, 500, "3").to_dict()
        assert data["error"] == "CAPACITY_EXCEEDED"
        assert data["category"] == "validation"
        assert data["remaining"] == 500

    def test_conflict_keeps_server_text(self):
        exc = ConflictError("Kapasite Aşımı! Kalan m2: 100")
        assert str(exc) == "Kapasite Aşımı! Kalan m2: 100"
        assert exc.to_dict()["category"] == "conflict"

    def test_code_override(self):
        with pytest.raises(LeasingError) as exc:
            raise LeasingError("x", code="CUSTOM")
        assert exc.value.code == "CUSTOM"

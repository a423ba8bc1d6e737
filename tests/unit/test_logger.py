"""Test structured logging setup."""

import json
import logging

import structlog

from drill.observability.logger import get_trace_id, new_trace_id, setup_logging


class TestTraceId:
    def test_new_trace_id_is_current(self):
        tid = new_trace_id()
        assert get_trace_id() == tid

    def test_new_trace_ids_differ(self):
        assert new_trace_id() != new_trace_id()


class TestSetupLogging:
    def test_json_output_includes_trace_id(self, capsys):
        setup_logging(level="INFO", format="json")
        tid = new_trace_id()
        logging.getLogger("drill.test").info("hello %s", "world", extra={"service": "A"})

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "hello world"
        assert record["trace_id"] == tid
        assert record["service"] == "A"
        assert record["level"] == "info"

    def test_level_filters(self, capsys):
        setup_logging(level="ERROR", format="json")
        logging.getLogger("drill.test").warning("hidden")
        assert capsys.readouterr().err == ""

    def test_structlog_logger_works(self, capsys):
        setup_logging(level="INFO", format="json")
        structlog.get_logger("drill.test").info("structured", count=3)
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "structured"
        assert record["count"] == 3

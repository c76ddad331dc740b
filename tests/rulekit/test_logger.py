"""Tests for the rulekit logger."""

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import pytest

from rulekit.executor import ToolchainResolver
from rulekit.platform import ConfigurationKey
from rulekit.registry import default_registry
from rulekit.utils.logger import (
    JsonFormatter,
    get_log_dir,
    get_logger,
    resolution_context,
)


@pytest.fixture
def fresh_logger(request):
    """A uniquely named logger, stripped of handlers afterwards."""
    name = f"rulekit.test.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestGetLogger:
    def test_log_files_in_user_space(self, _setup_user_space, fresh_logger):
        """File handlers write under {user space}/logs."""
        logger = get_logger(fresh_logger)
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        names = sorted(os.path.basename(h.baseFilename) for h in file_handlers)
        assert names == ["rulekit.errors.log", "rulekit.json", "rulekit.log"]
        assert get_log_dir() == _setup_user_space / "logs"

    def test_handlers_added_once(self, fresh_logger):
        logger = get_logger(fresh_logger)
        count = len(logger.handlers)
        assert get_logger(fresh_logger) is logger
        assert len(logger.handlers) == count

    def test_level(self, fresh_logger):
        assert get_logger(fresh_logger, "ERROR").level == logging.ERROR
        assert get_logger(fresh_logger, logging.INFO).level == logging.INFO

    def test_default_level_debug(self, fresh_logger):
        assert get_logger(fresh_logger).level == logging.DEBUG

    def test_writes_main_log(self, _setup_user_space, fresh_logger):
        logger = get_logger(fresh_logger)
        logger.info("resolved cxx_toolchain")
        for handler in logger.handlers:
            handler.flush()
        text = (_setup_user_space / "logs" / "rulekit.log").read_text(encoding="utf-8")
        assert "resolved cxx_toolchain" in text


class TestJsonFormatter:
    def test_format(self):
        record = logging.LogRecord(
            "rulekit.executor", logging.WARNING, __file__, 1, "failed %s", ("cxx",), None
        )
        data = json.loads(JsonFormatter().format(record))
        assert data["level"] == "WARNING"
        assert data["logger"] == "rulekit.executor"
        assert data["message"] == "failed cxx"
        assert "timestamp" in data

    def test_resolution_context_fields(self, linux_platform):
        """Key context passed through extra= appears in the JSON record."""
        key = ConfigurationKey.create("cxx_toolchain", linux_platform, {}, label="//tc:cxx")
        logger = logging.getLogger("rulekit.test.context")
        record = logger.makeRecord(
            logger.name, logging.DEBUG, __file__, 1, "resolving", (), None,
            extra=resolution_context(key),
        )
        data = json.loads(JsonFormatter().format(record))
        assert data["rule"] == "cxx_toolchain"
        assert data["label"] == "//tc:cxx"
        assert data["key"] == key.digest

    def test_no_context_fields_by_default(self):
        record = logging.LogRecord("rulekit", logging.INFO, __file__, 1, "plain", (), None)
        data = json.loads(JsonFormatter().format(record))
        assert "key" not in data
        assert "label" not in data

    def test_resolver_records_carry_context(self, linux_platform, caplog):
        resolver = ToolchainResolver(default_registry(), platform=linux_platform)
        with caplog.at_level(logging.DEBUG, logger="rulekit"):
            instance = resolver.resolve("cxx_toolchain")
        records = [r for r in caplog.records if r.getMessage().startswith("Resolving")]
        assert records
        assert records[0].key == instance.key.digest
        assert records[0].label == "cxx_toolchain"

    def test_format_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord(
                "rulekit", logging.ERROR, __file__, 1, "oops", (), sys.exc_info()
            )
        data = json.loads(JsonFormatter().format(record))
        assert "ValueError: bad" in data["exception"]

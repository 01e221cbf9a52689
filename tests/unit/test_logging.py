"""Tests for fieldkit logging utilities."""

import asyncio
import json
import logging
import sys

from fieldkit import ValidationError, define_field, define_model
from fieldkit.logging import JSONFormatter, log_changes, setup_logging


def make_record(msg="Test message", args=(), exc_info=None, level=logging.INFO):
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/test/file.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_format(self):
        """Should format log record as JSON."""
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert data["message"] == "Test message"
        assert data["timestamp"].endswith("Z")
        assert "extra" not in data

    def test_format_with_args(self):
        data = json.loads(JSONFormatter().format(make_record("Validated %d fields", (3,))))
        assert data["message"] == "Validated 3 fields"

    def test_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record(exc_info=exc_info, level=logging.ERROR)))
        assert "ValueError: Test error" in data["exception"]

    def test_extra_attributes(self):
        record = make_record()
        record.event = "validChange"
        record.state = False
        data = json.loads(JSONFormatter().format(record))
        assert data["extra"] == {"event": "validChange", "state": False}

    def test_include_and_exclude(self):
        record = make_record()
        record.source = "sku"
        record.noise = "x"
        data = json.loads(JSONFormatter(include_fields=["source"], exclude_fields=["noise"]).format(record))
        assert data["source"] == "sku"
        assert "extra" not in data


class TestLogChanges:
    """Tests for log_changes."""

    def test_field_events_logged(self, caplog):
        async def reject(value):
            raise ValidationError("bad sku")

        f = define_field("sku", default="A", validator=reject)()
        detach = log_changes(f)

        with caplog.at_level(logging.INFO, logger="fieldkit.changes"):
            f.value = "B"
            asyncio.run(f.sync())
            asyncio.run(f.validate())

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["sku is now modified", "sku validation is now False"]
        assert caplog.records[1].errors == [{"message": "bad sku"}]
        assert caplog.records[0].event == "modifiedChange"

        detach()
        caplog.clear()
        f.reset()
        assert caplog.records == []

    def test_model_events_logged(self, caplog):
        m = define_model(["a"], name="Order")()
        log_changes(m, logger=logging.getLogger("custom"), level=logging.WARNING)

        with caplog.at_level(logging.WARNING, logger="custom"):
            asyncio.run(m.validate())

        assert [r.getMessage() for r in caplog.records] == ["Order validation is now True"]


class TestSetupLogging:
    """Tests for setup_logging."""

    NAMES = ("fieldkit", "fieldkit.changes", "fieldkit.events")

    def setup_method(self):
        self._saved = {}
        for name in self.NAMES:
            log = logging.getLogger(name)
            self._saved[name] = (log.level, log.propagate, log.handlers[:])

    def teardown_method(self):
        for name, (level, propagate, handlers) in self._saved.items():
            log = logging.getLogger(name)
            for handler in log.handlers[:]:
                if handler not in handlers:
                    log.removeHandler(handler)
                    handler.close()
            log.setLevel(level)
            log.propagate = propagate

    def test_configures_package_logger_only(self):
        root_handlers = logging.getLogger().handlers[:]
        package_logger = setup_logging()

        assert package_logger.name == "fieldkit"
        assert package_logger.level == logging.WARNING
        assert package_logger.propagate is False
        assert len(package_logger.handlers) == 1
        assert not isinstance(package_logger.handlers[0].formatter, JSONFormatter)
        assert logging.getLogger("fieldkit.changes").level == logging.INFO
        assert logging.getLogger().handlers == root_handlers

    def test_repeated_setup_does_not_duplicate_handlers(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("fieldkit").handlers) == 1

    def test_changes_reach_file_without_verbose(self, tmp_path):
        """log_changes records pass while internal debug lines are hidden."""
        log_file = tmp_path / "fieldkit.log"
        setup_logging(json_format=True, log_file=str(log_file))

        async def fails(value):
            raise ValidationError("required")

        f = define_field("sku", validator=fails)()
        log_changes(f)
        asyncio.run(f.validate())
        for handler in logging.getLogger("fieldkit").handlers:
            handler.flush()

        records = [json.loads(line) for line in log_file.read_text().splitlines()]
        assert [r["logger"] for r in records] == ["fieldkit.changes"]
        assert records[0]["message"] == "sku validation is now False"
        assert records[0]["extra"]["errors"][0]["message"] == "required"

    def test_verbose_shows_internal_debug(self, tmp_path):
        log_file = tmp_path / "fieldkit.log"
        setup_logging(verbose=True, log_file=str(log_file))

        asyncio.run(define_field("sku")().validate())
        for handler in logging.getLogger("fieldkit").handlers:
            handler.flush()

        assert "fieldkit.field" in log_file.read_text()

    def test_changes_level(self):
        setup_logging(changes_level=logging.WARNING)
        assert logging.getLogger("fieldkit.changes").level == logging.WARNING

    def test_log_events_setting_enables_dispatch_debug(self, tmp_path):
        (tmp_path / ".fieldkit.yaml").write_text("fieldkit:\n  log_events: true\n")
        setup_logging()
        assert logging.getLogger("fieldkit.events").level == logging.DEBUG

    def test_events_follow_package_level_by_default(self):
        setup_logging()
        assert logging.getLogger("fieldkit.events").level == logging.NOTSET

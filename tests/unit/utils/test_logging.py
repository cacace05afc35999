"""Tests for structured logging helpers."""

import json
import logging
import uuid

import pytest

from stratbook.utils.logging import (
    ContentEventLogger,
    JSONFormatter,
    TextFormatter,
    setup_logging,
)


def _record(message="hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("stratbook.test", logging.INFO, __file__, 10, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:

    def test_json_includes_context(self):
        payload = json.loads(JSONFormatter().format(_record(event="version_created", version_number=2)))
        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["context"] == {"event": "version_created", "version_number": 2}
        assert payload["timestamp"].endswith("Z")

    def test_json_stringifies_unserializable_values(self):
        strategy_id = uuid.uuid4()
        payload = json.loads(JSONFormatter().format(_record(strategy=strategy_id)))
        assert payload["context"]["strategy"] == str(strategy_id)

    def test_json_without_extras(self):
        payload = json.loads(JSONFormatter(include_extras=False).format(_record(event="x")))
        assert "context" not in payload

    def test_text_appends_context(self):
        line = TextFormatter().format(_record(event="image_uploaded"))
        assert line.endswith("| hello | event=image_uploaded")


class TestContentEventLogger:

    def test_version_created(self, caplog):
        events = ContentEventLogger("stratbook.test.events")
        strategy_id, version_id = uuid.uuid4(), uuid.uuid4()

        with caplog.at_level(logging.INFO, logger="stratbook.test.events"):
            events.version_created(strategy_id, version_id, 3, change_notes="Updated strategy")

        record = caplog.records[-1]
        assert record.event == "version_created"
        assert record.strategy_id == str(strategy_id)
        assert record.version_number == 3
        assert record.change_notes == "Updated strategy"

    @pytest.mark.parametrize("failed,level", [(0, logging.INFO), (2, logging.WARNING)])
    def test_images_copied_level(self, caplog, failed, level):
        events = ContentEventLogger("stratbook.test.events")

        with caplog.at_level(logging.INFO, logger="stratbook.test.events"):
            events.images_copied(uuid.uuid4(), None, uuid.uuid4(), copied=3, failed=failed)

        record = caplog.records[-1]
        assert record.levelno == level
        assert record.from_version_id is None

    def test_upload_rejected(self, caplog):
        events = ContentEventLogger("stratbook.test.events")

        with caplog.at_level(logging.WARNING, logger="stratbook.test.events"):
            events.upload_rejected(None, "notes.pdf", "notes.pdf is not an image")

        record = caplog.records[-1]
        assert record.file_name == "notes.pdf"
        assert record.event == "upload_rejected"


class TestSetupLogging:

    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "logs" / "stratbook.log"
        setup_logging(level="DEBUG", format="json", file=log_file)

        logging.getLogger("stratbook.test.setup").info("written")
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written"
        assert logging.getLogger().level == logging.DEBUG

    def test_text_format(self):
        setup_logging(level="WARNING", format="text")
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, TextFormatter)

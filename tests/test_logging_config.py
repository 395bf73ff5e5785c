"""Tests for the JSON formatter and the batch logger adapter."""

import json
import logging

from tomekeeper.utils.logging_config import BatchAdapter, JSONFormatter, get_logger


def _record(**extra):
    record = logging.LogRecord("tomekeeper.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_single_line_with_extras(self):
        line = JSONFormatter().format(_record(batch_id="b1", item_id="i1", attempt=2))
        assert "\n" not in line
        entry = json.loads(line)
        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["batch_id"] == "b1"
        assert entry["item_id"] == "i1"
        assert entry["attempt"] == 2
        assert "world_id" not in entry


class TestBatchAdapter:

    def test_injects_batch_id(self, caplog):
        adapter = BatchAdapter(get_logger("tomekeeper.test"), "batch-42")
        with caplog.at_level(logging.INFO, logger="tomekeeper.test"):
            adapter.info("started", extra={"item_id": "i1"})
        record = caplog.records[-1]
        assert record.batch_id == "batch-42"
        assert record.item_id == "i1"


class TestGetLogger:

    def test_namespaces_foreign_names(self):
        assert get_logger("ingest").name == "tomekeeper.ingest"
        assert get_logger("tomekeeper.repositories").name == "tomekeeper.repositories"

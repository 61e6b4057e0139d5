"""
Tests for logging infrastructure.
"""

import json
import logging
import sys

import pytest

from tablestorage.core.logging_config import (
    setup_logging,
    log_with_context,
    JSONFormatter,
    TextFormatter,
    SensitiveDataFilter,
    _parse_size
)


def _record(msg, level=logging.INFO, exc_info=None, args=(), context=None):
    record = logging.LogRecord(
        name="tablestorage.repository.repository",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=exc_info
    )
    if context is not None:
        record.context = context
    return record


class TestLoggingSetup:
    """Test suite for logging setup."""

    def test_setup_logging_defaults(self):
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)

    def test_setup_logging_text_format(self):
        setup_logging(level="DEBUG", format_type="text")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, TextFormatter)

    def test_setup_logging_with_file(self, tmp_path):
        """Test records reach a rotating log file as JSON lines."""
        log_file = tmp_path / "logs" / "tablestorage.log"
        setup_logging(log_file=str(log_file))

        log_with_context(
            logging.getLogger("tablestorage.repository.repository"), logging.INFO,
            "Collected full listing", table_name="people", pages=3, entities=2200,
        )

        lines = [json.loads(line) for line in log_file.read_text().splitlines()]
        listing = next(line for line in lines if line["message"] == "Collected full listing")
        assert listing["table_name"] == "people"
        assert listing["pages"] == 3
        assert listing["entities"] == 2200

    def test_setup_logging_with_module_levels(self):
        setup_logging(
            level="INFO",
            module_levels={"tablestorage.storage.backend": "DEBUG"}
        )

        assert logging.getLogger("tablestorage.storage.backend").isEnabledFor(logging.DEBUG)
        assert not logging.getLogger("tablestorage.other").isEnabledFor(logging.DEBUG)


class TestJSONFormatter:
    """Test suite for JSON formatter."""

    def test_format_basic_message(self):
        data = json.loads(JSONFormatter().format(_record("Fetched %d entities", args=(5,))))

        assert data["level"] == "INFO"
        assert data["logger"] == "tablestorage.repository.repository"
        assert data["message"] == "Fetched 5 entities"
        assert "timestamp" in data
        assert "context" not in data

    def test_format_with_exception(self):
        try:
            raise ValueError("Test error")
        except ValueError:
            record = _record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))
        assert "ValueError: Test error" in data["exception"]

    def test_scan_fields_are_top_level(self):
        """Test table, partition and counts are lifted out of the context."""
        record = _record("Collected full listing", context={
            "table_name": "people",
            "partition_key": "EU",
            "pages": 3,
            "entities": 2001,
            "resumed": True,
        })

        data = json.loads(JSONFormatter().format(record))

        assert data["table_name"] == "people"
        assert data["partition_key"] == "EU"
        assert data["pages"] == 3
        assert data["entities"] == 2001
        assert data["context"] == {"resumed": True}

    def test_format_does_not_mutate_context(self):
        context = {"table_name": "people", "pages": 1}
        record = _record("Collected full listing", context=context)

        JSONFormatter().format(record)

        assert record.context == {"table_name": "people", "pages": 1}


class TestTextFormatter:
    """Test suite for text formatter."""

    def test_appends_context_pairs(self):
        record = _record("Collected full listing", context={"table_name": "people", "pages": 2})

        line = TextFormatter().format(record)

        assert line.endswith("Collected full listing [table_name=people pages=2]")

    def test_plain_record(self):
        line = TextFormatter().format(_record("Created table 'people'"))
        assert line.endswith("tablestorage.repository.repository: Created table 'people'")


class TestSensitiveDataFilter:
    """Test suite for sensitive data filter."""

    @pytest.mark.parametrize("msg,secret", [
        ("DefaultEndpointsProtocol=https;AccountName=test;AccountKey=secretkey123;", "secretkey123"),
        ("SharedAccessSignature=sv=2021&sig=abc123", "abc123"),
        ("https://acct.table.core.windows.net/people?sv=2021&sig=signature456", "signature456"),
        ("Authorization: SharedKey acct:c2lnbmF0dXJl", "c2lnbmF0dXJl"),
    ])
    def test_redacts_credentials(self, msg, secret):
        record = _record(msg)

        assert SensitiveDataFilter().filter(record) is True
        assert secret not in record.msg
        assert "***REDACTED***" in record.msg

    def test_redacts_arguments_and_context(self):
        record = _record(
            "Connecting with %s",
            args=("AccountName=test;AccountKey=secretkey123;",),
            context={"connection_string": "AccountKey=secretkey123", "pages": 2},
        )

        SensitiveDataFilter().filter(record)

        assert "secretkey123" not in record.getMessage()
        assert record.context == {"connection_string": "AccountKey=***REDACTED***", "pages": 2}

    def test_leaves_plain_messages(self):
        record = _record("Fetched 5 entities from 'people'")
        SensitiveDataFilter().filter(record)
        assert record.msg == "Fetched 5 entities from 'people'"


class TestHelpers:
    """Tests for helper functions."""

    @pytest.mark.parametrize("size,expected", [
        ("10MB", 10 * 1024 ** 2),
        ("1GB", 1024 ** 3),
        ("512kb", 512 * 1024),
        ("1.5 MB", int(1.5 * 1024 ** 2)),
        ("100B", 100),
        ("2048", 2048),
    ])
    def test_parse_size(self, size, expected):
        assert _parse_size(size) == expected

    @pytest.mark.parametrize("size", ["", "ten MB", "10TB"])
    def test_parse_size_rejects_garbage(self, size):
        with pytest.raises(ValueError):
            _parse_size(size)

    def test_log_with_context(self, caplog):
        logger = logging.getLogger("tablestorage.test")

        with caplog.at_level(logging.DEBUG, logger="tablestorage.test"):
            log_with_context(logger, logging.DEBUG, "Collected full listing", pages=2)

        assert caplog.records[-1].context == {"pages": 2}

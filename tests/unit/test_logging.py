"""Tests for structured logging formatters and context fields."""

import json
import logging

import pytest

from license_console.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_log_context,
    configure_logging,
    set_log_context,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_log_context()
    yield
    clear_log_context()


def _record(msg="Saved permissions"):
    return logging.LogRecord(
        name="license_console.access.editor",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


def test_structured_formatter_includes_context():
    set_log_context(admin_id="admin-2", resource_type="licenses")

    entry = json.loads(StructuredFormatter().format(_record()))

    assert entry["message"] == "Saved permissions"
    assert entry["level"] == "INFO"
    assert entry["admin_id"] == "admin-2"
    assert entry["resource_type"] == "licenses"
    assert "request_id" not in entry


def test_human_formatter_context_suffix():
    set_log_context(admin_id="admin-2", request_id="r1")

    line = HumanReadableFormatter().format(_record())

    assert "Saved permissions" in line
    assert line.endswith("[admin=admin-2, req=r1]")


def test_human_formatter_without_context():
    line = HumanReadableFormatter().format(_record())

    assert not line.endswith("]")


def test_configure_logging_production_uses_json():
    configure_logging(environment="production", log_level="debug")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging(environment="test")
    assert isinstance(root.handlers[0].formatter, HumanReadableFormatter)

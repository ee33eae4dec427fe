"""Tests for run-scoped structured logging."""

import json
import logging

import pytest

from flowdiagram.observability import (
    clear_trace_context,
    get_trace_context,
    set_trace_context,
)
from flowdiagram.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    strip_ansi_codes,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_trace_context()
    yield
    clear_trace_context()


def make_record(message="hello", **extra):
    record = logging.LogRecord("flowdiagram.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_trace_context_merges():
    set_trace_context(run_id="abc")
    set_trace_context(node_id="n1")
    assert get_trace_context() == {"run_id": "abc", "node_id": "n1"}


def test_structured_formatter_includes_context():
    set_trace_context(run_id="run-123", node_id="n1")
    data = json.loads(StructuredFormatter().format(make_record("\033[31mred\033[0m", step=2)))

    assert data["message"] == "red"
    assert data["level"] == "info"
    assert data["run_id"] == "run-123"
    assert data["node_id"] == "n1"
    assert data["step"] == 2


def test_human_formatter_prefix():
    set_trace_context(run_id="0123456789abcdef", node_id="n1")
    line = strip_ansi_codes(HumanReadableFormatter().format(make_record("step done")))
    assert line == "[INFO    ] [run:01234567 | node:n1] step done"


def test_human_formatter_without_context():
    line = strip_ansi_codes(HumanReadableFormatter().format(make_record("plain")))
    assert line == "[INFO    ] plain"

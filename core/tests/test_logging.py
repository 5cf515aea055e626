"""Tests for structured logging and trace context propagation."""

import json
import logging

import pytest

from director_node.observability import clear_trace_context, get_trace_context, set_trace_context
from director_node.observability.logging import HumanReadableFormatter, StructuredFormatter


@pytest.fixture(autouse=True)
def reset_context():
    clear_trace_context()
    yield
    clear_trace_context()


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="director_node.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestTraceContext:
    def test_set_merges(self):
        set_trace_context(run_id="run-1", graph_id="graph-1")
        set_trace_context(node_id="n1")
        assert get_trace_context() == {"run_id": "run-1", "graph_id": "graph-1", "node_id": "n1"}

    def test_get_returns_copy(self):
        set_trace_context(run_id="run-1")
        get_trace_context()["run_id"] = "changed"
        assert get_trace_context()["run_id"] == "run-1"

    def test_clear(self):
        set_trace_context(run_id="run-1")
        clear_trace_context()
        assert get_trace_context() == {}


class TestStructuredFormatter:
    def test_includes_context_and_extras(self):
        set_trace_context(run_id="run-1", node_id="i1")
        record = make_record("\033[32m✓ Node i1 completed\033[0m", duration_ms=12)

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "info"
        assert entry["logger"] == "director_node.test"
        assert entry["message"] == "✓ Node i1 completed"
        assert entry["run_id"] == "run-1"
        assert entry["node_id"] == "i1"
        assert entry["duration_ms"] == 12
        assert "exception" not in entry

    def test_unknown_extras_are_dropped(self):
        entry = json.loads(StructuredFormatter().format(make_record("hi", secret="x")))
        assert "secret" not in entry


class TestHumanReadableFormatter:
    def test_context_prefix(self):
        set_trace_context(run_id="0123456789abcdef", node_id="v1")
        output = HumanReadableFormatter().format(make_record("Video placeholder created"))
        assert "[run:89abcdef | node:v1]" in output
        assert output.endswith("Video placeholder created")

    def test_no_prefix_without_context(self):
        output = HumanReadableFormatter().format(make_record("Starting", event="boot"))
        assert "[run:" not in output
        assert output.endswith("Starting [boot]")

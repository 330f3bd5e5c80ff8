"""Unit tests for observability module."""

import io
import json
import logging

from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import pytest

from index_query_tool.executor import QueryExecutor
from index_query_tool.formatters import MultilineFormatter
from index_query_tool.observability import (
    DOCUMENTS_PRINTED,
    QUERY_COUNT,
    QUERY_LATENCY,
    JsonFormatter,
    configure_logging,
    create_span,
    get_trace_context,
    init_tracing,
    tracing as tracing_module,
    track_latency,
    track_run,
)
from index_query_tool.observability.context import update_span_id
from index_query_tool.projection import FieldProjector


def _record(msg, level=logging.INFO, name="index_query_tool.executor"):
    return logging.LogRecord(name=name, level=level, pathname="x.py", lineno=1, msg=msg, args=(), exc_info=None)


class TestJsonFormatter:
    def test_format_includes_trace_context(self):
        data = json.loads(JsonFormatter().format(_record("test message")))
        assert data["message"] == "test message"
        assert data["level"] == "INFO"
        assert data["component"] == "executor"
        assert "timestamp" in data
        assert "trace_id" in data
        assert "span_id" in data

    def test_format_includes_extra_fields(self):
        record = _record("matched")
        record.query = "title:hello"
        assert json.loads(JsonFormatter().format(record))["query"] == "title:hello"

    def test_format_truncates_and_redacts(self):
        record = _record("x" * 5000)
        record.token = "secret"
        data = json.loads(JsonFormatter().format(record))
        assert data["message"].endswith("...")
        assert len(data["message"]) == JsonFormatter.MAX_MESSAGE_LEN + 3
        assert data["token"] == "[REDACTED]"

    def test_json_default_handles_set_and_bytes(self):
        formatter = JsonFormatter()
        assert formatter._json_default({3, 1, 2}) == [1, 2, 3]
        assert formatter._json_default(b"ok") == "ok"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_single_stderr_handler(self):
        configure_logging("info", json_output=True, logger_levels={"index_query_tool.script": "debug"})
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("whoosh").level == logging.WARNING
        assert logging.getLogger("index_query_tool.script").level == logging.DEBUG

    def test_unknown_level_falls_back_to_warning(self):
        configure_logging("loud")
        assert logging.getLogger().level == logging.WARNING


class TestTraceContext:
    def test_get_trace_context_generates_ids(self):
        ctx = get_trace_context()
        assert len(ctx["trace_id"]) == 32
        assert len(ctx["span_id"]) == 16

    def test_update_span_id_preserves_trace_id(self):
        update_span_id("bb" * 8, "aa" * 16)
        update_span_id("cc" * 8)
        ctx = get_trace_context()
        assert ctx["trace_id"] == "aa" * 16
        assert ctx["span_id"] == "cc" * 8


class TestTracing:
    @pytest.fixture
    def exporter(self, monkeypatch):
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        monkeypatch.setitem(tracing_module._tracer_holder, "tracer", provider.get_tracer("test"))
        return exporter

    def test_init_tracing_creates_tracer(self, monkeypatch):
        monkeypatch.setitem(tracing_module._tracer_holder, "tracer", None)
        provider = init_tracing("test-service")
        assert provider.resource.attributes["service.name"] == "test-service"
        assert tracing_module._tracer_holder["tracer"] is not None

    def test_create_span_skips_none_attributes(self, exporter):
        with create_span("unit", attributes={"kept": "yes", "dropped": None}):
            pass
        (span,) = exporter.get_finished_spans()
        assert span.name == "unit"
        assert dict(span.attributes) == {"kept": "yes"}

    def test_create_span_records_errors(self, exporter):
        with pytest.raises(RuntimeError), create_span("failing"):
            raise RuntimeError("boom")
        (span,) = exporter.get_finished_spans()
        assert span.status.status_code is StatusCode.ERROR

    def test_query_span_carries_counts(self, exporter, library):
        executor = QueryExecutor(library, FieldProjector(["path"]), MultilineFormatter(), output_limit=1)
        executor.run_query("body:lucene", io.StringIO())
        (span,) = exporter.get_finished_spans()
        assert span.name == "query.execute"
        assert span.attributes["query.total_hits"] == 2
        assert span.attributes["query.printed"] == 1


class TestMetrics:
    def test_track_run_counts_outcomes(self):
        ok = QUERY_COUNT.labels(mode="unit", status="ok")
        error = QUERY_COUNT.labels(mode="unit", status="error")
        ok_before, error_before = ok._value.get(), error._value.get()

        with track_run("unit"):
            pass
        with pytest.raises(ValueError), track_run("unit"):
            raise ValueError("bad")

        assert ok._value.get() == ok_before + 1
        assert error._value.get() == error_before + 1

    def test_track_latency_observes(self):
        histogram = QUERY_LATENCY.labels(mode="latency-unit")
        before = histogram._sum.get()
        with track_latency(QUERY_LATENCY, mode="latency-unit"):
            pass
        assert histogram._sum.get() >= before

    def test_documents_printed(self, library):
        counter = DOCUMENTS_PRINTED.labels(mode="all")
        before = counter._value.get()
        QueryExecutor(library, FieldProjector(["path"]), MultilineFormatter()).run_query(None, io.StringIO())
        assert counter._value.get() == before + 3

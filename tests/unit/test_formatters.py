"""Unit tests for output formatters and the result writer."""

import io
import json

import pytest

from index_query_tool.errors import ConfigurationError
from index_query_tool.formatters import (
    CompactJsonFormatter,
    FormatKind,
    MultilineFormatter,
    PrettyJsonFormatter,
    ResultWriter,
    TabularFormatter,
    create_formatter,
)
from index_query_tool.projection import DocumentProjection


def _projection(**values):
    return DocumentProjection(
        field_names=tuple(values),
        values={name: tuple(items) for name, items in values.items() if items},
    )


DOC = _projection(path=["/a"], tag=["a", "b"])
NO_TAG = _projection(path=["/c"], tag=[])


class TestFormatKind:
    def test_from_name_is_case_insensitive(self):
        assert FormatKind.from_name("JSON-Pretty") is FormatKind.JSON_PRETTY

    def test_from_name_rejects_unknown(self):
        with pytest.raises(ConfigurationError, match="expected one of"):
            FormatKind.from_name("xml")

    @pytest.mark.parametrize(
        ("kind", "cls"),
        [
            ("multiline", MultilineFormatter),
            ("tabular", TabularFormatter),
            ("json", CompactJsonFormatter),
            (FormatKind.JSON_PRETTY, PrettyJsonFormatter),
        ],
    )
    def test_create_formatter(self, kind, cls):
        assert type(create_formatter(kind)) is cls


class TestMultiline:
    def test_one_line_per_value(self):
        assert MultilineFormatter().format(DOC) == "path: /a\ntag: a\ntag: b"

    def test_suppressed_names(self):
        assert MultilineFormatter(suppress_names=True).format(DOC) == "/a\na\nb"

    def test_document_without_values_is_suppressed(self):
        assert MultilineFormatter().format(_projection(tag=[])) == ""


class TestTabular:
    def test_multi_value_cell(self):
        assert TabularFormatter().format(DOC) == "/a\ta|b"

    def test_absent_field_is_empty_cell(self):
        assert TabularFormatter().format(NO_TAG) == "/c\t"

    def test_header(self):
        assert TabularFormatter().header(("path", "tag")) == "path\ttag"
        assert TabularFormatter(suppress_names=True).header(("path", "tag")) is None


class TestJson:
    def test_compact(self):
        text = CompactJsonFormatter().format(DOC)
        assert "\n" not in text
        assert json.loads(text) == {"path": "/a", "tag": ["a", "b"]}

    def test_fields_without_values_are_omitted(self):
        assert json.loads(CompactJsonFormatter().format(NO_TAG)) == {"path": "/c"}

    def test_document_without_values_is_suppressed(self):
        assert CompactJsonFormatter().format(_projection(tag=[])) == ""

    def test_names_never_suppressed(self):
        assert json.loads(CompactJsonFormatter(suppress_names=True).format(DOC))["path"] == "/a"

    def test_pretty_indents_two_spaces(self):
        text = PrettyJsonFormatter().format(DOC)
        assert text.splitlines()[1] == '  "path": "/a",'
        assert json.loads(text) == {"path": "/a", "tag": ["a", "b"]}


class TestResultWriter:
    def test_multiline_separates_documents_with_blank_line(self):
        sink = io.StringIO()
        writer = ResultWriter(MultilineFormatter(), sink)
        writer.write(_projection(path=["/a"]))
        writer.write(_projection(path=["/b"]))
        assert sink.getvalue() == "path: /a\n\npath: /b\n"
        assert writer.printed == 2

    def test_suppressed_document_is_not_counted(self):
        sink = io.StringIO()
        writer = ResultWriter(MultilineFormatter(), sink)
        assert writer.write(_projection(path=["/a"]))
        assert not writer.write(_projection(path=[]))
        writer.write(_projection(path=["/b"]))
        assert sink.getvalue() == "path: /a\n\npath: /b\n"
        assert writer.printed == 2

    def test_tabular_header_written_once(self):
        sink = io.StringIO()
        writer = ResultWriter(TabularFormatter(), sink)
        writer.write(DOC)
        writer.write(NO_TAG)
        assert sink.getvalue() == "path\ttag\n/a\ta|b\n/c\t\n"

    def test_json_lines(self):
        sink = io.StringIO()
        writer = ResultWriter(CompactJsonFormatter(), sink)
        writer.write(DOC)
        writer.write(NO_TAG)
        assert [json.loads(line) for line in sink.getvalue().splitlines()] == [
            {"path": "/a", "tag": ["a", "b"]},
            {"path": "/c"},
        ]

    def test_write_line(self):
        sink = io.StringIO()
        ResultWriter(MultilineFormatter(), sink).write_line("totalHits: 0")
        assert sink.getvalue() == "totalHits: 0\n"

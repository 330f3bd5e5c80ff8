"""Output encodings for document projections.

Each ``FormatKind`` has one ``Formatter`` implementation, chosen once by
``create_formatter``. A formatter turns a projection into text; an empty
string tells the ``ResultWriter`` to skip the document entirely.

Tabular output joins the values of a multi-valued field with
``MULTI_VALUE_DELIMITER`` inside a single cell.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import ClassVar, TextIO

import orjson

from index_query_tool.errors import ConfigurationError
from index_query_tool.projection import DocumentProjection


MULTI_VALUE_DELIMITER = "|"
COLUMN_DELIMITER = "\t"


class FormatKind(str, Enum):
    """Supported output formats."""

    MULTILINE = "multiline"
    TABULAR = "tabular"
    JSON = "json"
    JSON_PRETTY = "json-pretty"

    @classmethod
    def from_name(cls, name: str) -> FormatKind:
        try:
            return cls(name.lower())
        except ValueError:
            choices = ", ".join(kind.value for kind in cls)
            raise ConfigurationError(f"Invalid format {name!r}, expected one of: {choices}") from None


class Formatter(ABC):
    """Renders one projection per call."""

    # Line written between two documents, if any.
    document_separator: ClassVar[str | None] = None

    def __init__(self, *, suppress_names: bool = False) -> None:
        self.suppress_names = suppress_names

    @abstractmethod
    def format(self, projection: DocumentProjection) -> str:
        """Return the rendered document, or an empty string to suppress it."""

    def header(self, field_names: tuple[str, ...]) -> str | None:
        """Return a line written once before the first document."""
        return None


class MultilineFormatter(Formatter):
    document_separator = ""

    def format(self, projection: DocumentProjection) -> str:
        lines: list[str] = []
        for name in projection.field_names:
            for value in projection.values_for(name):
                lines.append(value if self.suppress_names else f"{name}: {value}")
        return "\n".join(lines)


class TabularFormatter(Formatter):
    """Tab-separated rows under a one-time header line."""

    def format(self, projection: DocumentProjection) -> str:
        return COLUMN_DELIMITER.join(
            MULTI_VALUE_DELIMITER.join(projection.values_for(name)) for name in projection.field_names
        )

    def header(self, field_names: tuple[str, ...]) -> str | None:
        if self.suppress_names:
            return None
        return COLUMN_DELIMITER.join(field_names)


class CompactJsonFormatter(Formatter):
    """One JSON object per document; field names are always emitted."""

    _dump_options: ClassVar[int] = 0

    def format(self, projection: DocumentProjection) -> str:
        payload: dict[str, str | list[str]] = {}
        for name in projection.field_names:
            values = projection.values_for(name)
            if not values:
                continue
            payload[name] = values[0] if len(values) == 1 else list(values)
        if not payload:
            return ""
        return orjson.dumps(payload, option=self._dump_options).decode("utf-8")


class PrettyJsonFormatter(CompactJsonFormatter):
    _dump_options = orjson.OPT_INDENT_2


_FORMATTERS: dict[FormatKind, type[Formatter]] = {
    FormatKind.MULTILINE: MultilineFormatter,
    FormatKind.TABULAR: TabularFormatter,
    FormatKind.JSON: CompactJsonFormatter,
    FormatKind.JSON_PRETTY: PrettyJsonFormatter,
}


def create_formatter(kind: FormatKind | str, *, suppress_names: bool = False) -> Formatter:
    """Return the formatter for ``kind``."""

    if not isinstance(kind, FormatKind):
        kind = FormatKind.from_name(kind)
    return _FORMATTERS[kind](suppress_names=suppress_names)


class ResultWriter:
    """Writes formatted documents to one sink and counts what was printed.

    A new writer is created for every top-level invocation, so the printed
    count, the one-time header and the separators never leak between runs.
    """

    def __init__(self, formatter: Formatter, sink: TextIO) -> None:
        self.formatter = formatter
        self.sink = sink
        self.printed = 0
        self._header_written = False

    def write(self, projection: DocumentProjection) -> bool:
        """Write one document; return False if the formatter suppressed it."""
        if not self._header_written:
            self._header_written = True
            header = self.formatter.header(projection.field_names)
            if header is not None:
                self._write_line(header)

        text = self.formatter.format(projection)
        if not text:
            return False
        separator = self.formatter.document_separator
        if self.printed > 0 and separator is not None:
            self._write_line(separator)
        self._write_line(text)
        self.printed += 1
        return True

    def write_line(self, text: str = "") -> None:
        self._write_line(text)

    def _write_line(self, text: str) -> None:
        self.sink.write(text + "\n")

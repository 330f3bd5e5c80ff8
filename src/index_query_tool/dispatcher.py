"""Top-level routing of a query directive to one mode of operation.

A directive is the list of ``-q`` tokens. Its first token either names a
mode with a ``%`` sigil or is a plain query string::

    title:lucene                 plain query
    %all                         every document
    %enumerate-fields            field names
    %count-fields                documents per field
    %enumerate-terms FIELD       terms and document frequencies of a field
    %ids ID [ID ...]             documents by internal id
    %id-file FILE                documents by id, read from FILE
    %script FILE                 one query per line of FILE
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
import sys
from typing import TextIO, Union

from index_query_tool.config import QueryToolSettings
from index_query_tool.enumerators import count_fields, enumerate_fields, enumerate_terms
from index_query_tool.errors import ConfigurationError, InvalidFieldError
from index_query_tool.executor import QueryExecutor
from index_query_tool.filters import RegexFilter, parse_regex_option
from index_query_tool.formatters import create_formatter
from index_query_tool.index import QueryIndex
from index_query_tool.projection import FieldProjector
from index_query_tool.script import MODE_SIGIL, ScriptRunner


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryStringMode:
    query: str


@dataclass(frozen=True, slots=True)
class MatchAllMode:
    pass


@dataclass(frozen=True, slots=True)
class EnumerateFieldsMode:
    pass


@dataclass(frozen=True, slots=True)
class CountFieldsMode:
    pass


@dataclass(frozen=True, slots=True)
class EnumerateTermsMode:
    field_name: str


@dataclass(frozen=True, slots=True)
class IdsMode:
    ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class IdFileMode:
    path: Path


@dataclass(frozen=True, slots=True)
class ScriptMode:
    path: Path


QueryMode = Union[
    QueryStringMode,
    MatchAllMode,
    EnumerateFieldsMode,
    CountFieldsMode,
    EnumerateTermsMode,
    IdsMode,
    IdFileMode,
    ScriptMode,
]


def _expect_args(sigil: str, args: Sequence[str], count: int) -> None:
    if len(args) != count:
        if count == 0:
            raise ConfigurationError(f"{sigil} takes no arguments, got {list(args)}")
        noun = "argument" if count == 1 else "arguments"
        raise ConfigurationError(f"{sigil} requires exactly {count} {noun}, got {list(args)}")


def parse_directive(tokens: Sequence[str]) -> QueryMode:
    """Select exactly one mode from the directive tokens."""

    if not tokens:
        raise ConfigurationError("Empty query directive")
    head, args = tokens[0], tuple(tokens[1:])

    if not head.startswith(MODE_SIGIL):
        if args:
            raise ConfigurationError(f"A query must be a single argument, got extra arguments {list(args)}")
        return QueryStringMode(head)

    if head == "%all":
        _expect_args(head, args, 0)
        return MatchAllMode()
    if head == "%enumerate-fields":
        _expect_args(head, args, 0)
        return EnumerateFieldsMode()
    if head == "%count-fields":
        _expect_args(head, args, 0)
        return CountFieldsMode()
    if head == "%enumerate-terms":
        _expect_args(head, args, 1)
        return EnumerateTermsMode(args[0])
    if head == "%ids":
        if not args:
            raise ConfigurationError("%ids requires at least one id")
        return IdsMode(args)
    if head == "%id-file":
        _expect_args(head, args, 1)
        return IdFileMode(Path(args[0]))
    if head == "%script":
        _expect_args(head, args, 1)
        return ScriptMode(Path(args[0]))
    raise ConfigurationError(f"Unknown query mode: {head}")


class QueryTool:
    """Validates settings against an index and dispatches directives.

    Field selection, regex field and default field are checked against the
    index's field universe when the tool is built, before anything runs.
    """

    def __init__(self, index: QueryIndex, settings: QueryToolSettings, out: TextIO | None = None) -> None:
        self.index = index
        self.settings = settings
        self.out = out if out is not None else sys.stdout

        universe = index.field_universe
        invalid = [name for name in settings.fields if name not in universe]
        if invalid:
            raise InvalidFieldError(invalid)
        if settings.query_field is not None and settings.query_field not in universe:
            raise InvalidFieldError([settings.query_field], prefix="Invalid field name")

        regex_filter: RegexFilter | None = None
        if settings.regex is not None:
            regex_filter = parse_regex_option(settings.regex)
            regex_filter.validate(universe, settings.fields)

        projector = FieldProjector(
            settings.fields,
            show_id=settings.show_id,
            show_score=settings.show_score,
            sort_fields=settings.sort_fields,
        )
        formatter = create_formatter(settings.format, suppress_names=settings.suppress_names)
        self.executor = QueryExecutor(
            index,
            projector,
            formatter,
            analyzer=settings.analyzer,
            default_field=settings.query_field,
            output_limit=settings.effective_output_limit,
            regex_filter=regex_filter,
            show_hits=settings.show_hits,
        )

    def prepare(self, directive: Sequence[str]) -> QueryMode:
        """Parse a directive and validate everything that can fail before output starts."""
        mode = parse_directive(directive)
        if isinstance(mode, QueryStringMode):
            self.executor.compile(mode.query)
        elif isinstance(mode, EnumerateTermsMode):
            if mode.field_name not in self.index.field_universe:
                raise InvalidFieldError([mode.field_name], prefix="Invalid field name")
        elif isinstance(mode, IdsMode):
            for entry in mode.ids:
                for token in entry.split():
                    self.executor.parse_doc_id(token)
        elif isinstance(mode, ScriptMode):
            ScriptRunner(self.executor, self.out).load(mode.path)
        return mode

    def run(self, directive: Sequence[str]) -> None:
        """Run one directive to completion."""
        self.dispatch(self.prepare(directive))

    def dispatch(self, mode: QueryMode, out: TextIO | None = None) -> None:
        """Run a prepared mode, writing to ``out`` or the tool's own sink."""
        sink = out if out is not None else self.out
        logger.debug("Dispatching %s", mode)

        if isinstance(mode, QueryStringMode):
            self.executor.run_query(mode.query, sink)
        elif isinstance(mode, MatchAllMode):
            self.executor.run_query(None, sink)
        elif isinstance(mode, EnumerateFieldsMode):
            enumerate_fields(self.index, sink)
        elif isinstance(mode, CountFieldsMode):
            count_fields(self.index, sink)
        elif isinstance(mode, EnumerateTermsMode):
            enumerate_terms(self.index, mode.field_name, sink)
        elif isinstance(mode, IdsMode):
            self.executor.run_ids(mode.ids, sink)
        elif isinstance(mode, IdFileMode):
            with mode.path.open(encoding="utf-8") as id_file:
                self.executor.run_ids(id_file, sink)
        elif isinstance(mode, ScriptMode):
            ScriptRunner(self.executor, sink).run(mode.path)

"""Query execution: predicate matching, limiting, counting and ID lookup."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
import logging
from typing import TextIO

from whoosh.query import Every, Query

from index_query_tool.errors import ConfigurationError, InvalidFieldError
from index_query_tool.filters import RegexFilter, passes
from index_query_tool.formatters import Formatter, ResultWriter
from index_query_tool.index import AnalyzerKind, QueryIndex
from index_query_tool.observability import DOCUMENTS_PRINTED, create_span, track_run
from index_query_tool.projection import SENTINEL_SCORE, FieldProjector


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryOutcome:
    """Counts for one executed query or ID lookup."""

    total_hits: int
    printed: int


def referenced_fields(query: Query) -> set[str | None]:
    """Return every field name a parsed predicate refers to."""
    leaves = [query] if query.is_leaf() else query.leaves()
    fields: set[str | None] = set()
    for leaf in leaves:
        if isinstance(leaf, Every) and not leaf.fieldname:
            continue
        if hasattr(leaf, "fieldname"):
            fields.add(leaf.fieldname)
    return fields


class QueryExecutor:
    """Runs predicates against the index and streams results to a writer.

    Candidates are visited in index order. Every candidate counts towards the
    total hits; once ``output_limit`` documents have been printed, further
    candidates are only counted, never fetched or formatted.
    """

    def __init__(
        self,
        index: QueryIndex,
        projector: FieldProjector,
        formatter: Formatter,
        *,
        analyzer: AnalyzerKind = AnalyzerKind.KEYWORD,
        default_field: str | None = None,
        output_limit: int | float = float("inf"),
        regex_filter: RegexFilter | None = None,
        show_hits: bool = False,
    ) -> None:
        self.index = index
        self.projector = projector
        self.formatter = formatter
        self.analyzer = analyzer
        self.default_field = default_field
        self.output_limit = output_limit
        self.regex_filter = regex_filter
        self.show_hits = show_hits

    def compile(self, query_string: str | None) -> Query | None:
        """Parse and validate a query string; ``None`` means match-all."""
        if query_string is None:
            return None
        if ":" not in query_string and self.default_field is None:
            raise ConfigurationError("query has no ':' and no query-field defined")

        predicate = self.index.parse_query(query_string, self.default_field, self.analyzer)
        fields = referenced_fields(predicate)
        if None in fields:
            raise ConfigurationError(
                f"query {query_string!r} has unqualified or malformed terms and no query-field defined"
            )
        _validate_fields(fields, self.index.field_universe)
        return predicate

    def run_query(self, query_string: str | None, sink: TextIO) -> QueryOutcome:
        """Execute one query and write its documents to ``sink``."""
        mode = "all" if query_string is None else "query"
        with track_run(mode), create_span("query.execute", attributes={"query.text": query_string}) as span:
            predicate = self.compile(query_string)
            writer = ResultWriter(self.formatter, sink)
            field_subset = self.projector.field_subset
            total_hits = 0

            for doc_id, score in self.index.search(predicate):
                total_hits += 1
                if writer.printed >= self.output_limit:
                    continue
                stored = self.index.fetch_document(doc_id, field_subset)
                if not passes(self.regex_filter, stored):
                    continue
                writer.write(self.projector.project(doc_id, score, stored))

            if self.show_hits:
                writer.write_line(f"totalHits: {total_hits}")
                writer.write_line()

            span.set_attribute("query.total_hits", total_hits)
            span.set_attribute("query.printed", writer.printed)
            DOCUMENTS_PRINTED.labels(mode=mode).inc(writer.printed)
            logger.info("Query %r matched %d documents, printed %d", query_string, total_hits, writer.printed)
            return QueryOutcome(total_hits=total_hits, printed=writer.printed)

    def run_ids(self, id_lines: Iterable[str], sink: TextIO) -> QueryOutcome:
        """Write the documents at the given internal ids, bypassing scoring.

        Each entry of ``id_lines`` may hold several whitespace-separated ids.
        No limit and no regex filter apply.
        """
        with track_run("ids"), create_span("query.ids"):
            writer = ResultWriter(self.formatter, sink)
            field_subset = self.projector.field_subset
            fetched = 0
            for line in id_lines:
                for token in line.split():
                    doc_id = self.parse_doc_id(token)
                    stored = self.index.fetch_document(doc_id, field_subset)
                    fetched += 1
                    writer.write(self.projector.project(doc_id, SENTINEL_SCORE, stored))
            DOCUMENTS_PRINTED.labels(mode="ids").inc(writer.printed)
            logger.info("Fetched %d documents by id, printed %d", fetched, writer.printed)
            return QueryOutcome(total_hits=fetched, printed=writer.printed)

    def parse_doc_id(self, token: str) -> int:
        """Return the internal id named by ``token`` or raise ``ConfigurationError``."""
        try:
            doc_id = int(token)
        except ValueError:
            raise ConfigurationError(f"Invalid document id: {token!r}") from None
        if not 0 <= doc_id < self.index.doc_count:
            raise ConfigurationError(f"Document id out of range: {doc_id} (index holds {self.index.doc_count})")
        return doc_id


def _validate_fields(fields: Iterable[str | None], field_universe: Collection[str]) -> None:
    invalid = {name for name in fields if name is not None and name not in field_universe}
    if invalid:
        raise InvalidFieldError(invalid)

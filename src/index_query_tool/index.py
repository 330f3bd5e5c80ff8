"""Read-only access to prebuilt Whoosh indexes.

``QueryIndex`` is the only module that talks to the search library. It
provides:

* ``open_index`` - opens one or more index directories and presents them as a
  single logical index, computing the field universe once.
* ``QueryIndex.parse_query`` - compiles query text with either an exact-match
  or a tokenizing analyzer applied to every field.
* ``QueryIndex.search`` - a lazy stream of ``(doc_id, score)`` pairs visited in
  index order, one segment at a time.
* ``term_dictionary`` / ``field_doc_count`` - per-segment helpers used by the
  enumerators.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Iterable, Iterator, Sequence
from enum import Enum
import logging
from pathlib import Path
from typing import Any

from whoosh import index as whoosh_index
from whoosh.fields import ID, TEXT, FieldType, Schema
from whoosh.qparser import FieldsPlugin, QueryParser
from whoosh.query import Query
from whoosh.reading import IndexReader
from whoosh.searching import Searcher


logger = logging.getLogger(__name__)


class AnalyzerKind(str, Enum):
    """How query text is turned into terms."""

    KEYWORD = "KeywordAnalyzer"
    STANDARD = "StandardAnalyzer"


class QueryIndex:
    """A read-only logical view over one or more opened indexes.

    Each physical index keeps its own searcher, so fields are resolved
    against that index's schema. Doc ids are global: the ids of the second
    index start after the last slot of the first.
    """

    def __init__(self, readers: Sequence[IndexReader]) -> None:
        if not readers:
            raise ValueError("At least one index reader is required")
        self._searchers = [Searcher(reader) for reader in readers]
        self._offsets: list[int] = []
        total = 0
        for reader in readers:
            self._offsets.append(total)
            total += reader.doc_count_all()
        self._doc_count = total
        self.field_universe: frozenset[str] = frozenset(
            name for reader in readers for name in reader.schema.names()
        )
        self._parsing_schemas: dict[AnalyzerKind, Schema] = {}

    def __enter__(self) -> QueryIndex:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        for searcher in self._searchers:
            searcher.close()

    @property
    def doc_count(self) -> int:
        """Number of document slots, including deleted ones."""
        return self._doc_count

    def parse_query(self, text: str, default_field: str | None, analyzer: AnalyzerKind) -> Query:
        """Compile ``text`` into a predicate.

        Field qualifiers that are not part of the index are kept as written so
        callers can report them instead of having them folded into free text.
        """
        parser = QueryParser(default_field, self._parsing_schema(analyzer))
        parser.replace_plugin(FieldsPlugin(remove_unknown=False))
        return parser.parse(text)

    def search(self, query: Query | None = None) -> Iterator[tuple[int, float]]:
        """Yield ``(doc_id, score)`` for every match, in index order.

        ``None`` matches every live document with score ``1.0``, read straight
        from each segment's live doc ids. Nothing is collected or sorted; the
        caller decides how much of the stream to consume.
        """
        for searcher, base in zip(self._searchers, self._offsets):
            context = None if query is None else searcher.context()
            for subsearcher, offset in searcher.leaf_searchers():
                start = base + offset
                if query is None:
                    for docnum in subsearcher.reader().all_doc_ids():
                        yield start + docnum, 1.0
                    continue
                matcher = query.matcher(subsearcher, context)
                while matcher.is_active():
                    yield start + matcher.id(), matcher.score()
                    matcher.next()

    def fetch_document(self, doc_id: int, fields: Iterable[str] | None = None) -> list[tuple[str, Any]]:
        """Return the stored ``(field, value)`` pairs of a document in storage order."""
        position = bisect_right(self._offsets, doc_id) - 1
        reader = self._searchers[position].reader()
        stored = reader.stored_fields(doc_id - self._offsets[position])
        if fields is None:
            return list(stored.items())
        wanted = set(fields)
        return [(name, value) for name, value in stored.items() if name in wanted]

    def segments(self) -> list[IndexReader]:
        """Return the atomic segment readers behind this view."""
        return [segment for searcher in self._searchers for segment in _leaf_readers(searcher.reader())]

    def _parsing_schema(self, analyzer: AnalyzerKind) -> Schema:
        schema = self._parsing_schemas.get(analyzer)
        if schema is None:
            field_factory = ID if analyzer is AnalyzerKind.KEYWORD else TEXT
            schema = Schema(**{name: field_factory() for name in self.field_universe})
            self._parsing_schemas[analyzer] = schema
        return schema


def open_index(paths: Sequence[str | Path]) -> QueryIndex:
    """Open every index directory in ``paths`` read-only and merge them."""

    if not paths:
        raise ValueError("At least one index path is required")
    directories = [Path(path) for path in paths]
    readers: list[IndexReader] = []
    try:
        for directory in directories:
            if not whoosh_index.exists_in(str(directory)):
                raise FileNotFoundError(f"No index found at {directory}")
            ix = whoosh_index.open_dir(str(directory), readonly=True)
            readers.append(ix.reader())
            logger.debug("Opened index %s (%d documents)", directory, readers[-1].doc_count())
    except Exception:
        for reader in readers:
            reader.close()
        raise
    return QueryIndex(readers)


def term_dictionary(segment: IndexReader, field_name: str) -> Iterator[tuple[str, int]]:
    """Yield ``(term, doc_frequency)`` for every term of a field in one segment."""

    fieldtype = _indexed_field(segment, field_name)
    if fieldtype is None:
        return
    for btext in segment.lexicon(field_name):
        yield _term_text(fieldtype, btext), segment.doc_frequency(field_name, btext)


def field_doc_count(segment: IndexReader, field_name: str) -> int:
    """Count live documents of one segment holding at least one term in the field."""

    fieldtype = _indexed_field(segment, field_name)
    if fieldtype is None:
        return 0
    doc_ids: set[int] = set()
    for btext in segment.lexicon(field_name):
        doc_ids.update(segment.postings(field_name, btext).all_ids())
    return len(doc_ids)


def _indexed_field(segment: IndexReader, field_name: str) -> FieldType | None:
    if segment.schema is None or field_name not in segment.schema:
        return None
    fieldtype = segment.schema[field_name]
    # Stored-only fields have no postings format.
    if fieldtype.format is None:
        return None
    return fieldtype


def _term_text(fieldtype: FieldType, btext: bytes) -> str:
    value = fieldtype.from_bytes(btext)
    return value if isinstance(value, str) else str(value)


def _leaf_readers(reader: IndexReader) -> Iterator[IndexReader]:
    if reader.is_atomic():
        yield reader
        return
    for subreader, _offset in reader.leaf_readers():
        yield from _leaf_readers(subreader)

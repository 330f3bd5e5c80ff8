"""Read-only scans over the field universe and term dictionaries."""

from __future__ import annotations

from collections import Counter
import logging
from typing import TextIO

from index_query_tool.errors import ConfigurationError, InvalidFieldError
from index_query_tool.index import QueryIndex, field_doc_count, term_dictionary
from index_query_tool.observability import create_span, track_run


logger = logging.getLogger(__name__)


def enumerate_fields(index: QueryIndex, sink: TextIO) -> None:
    """Print every field name of the index, one per line, in lexical order."""
    with track_run("enumerate-fields"):
        for field_name in sorted(index.field_universe):
            sink.write(f"{field_name}\n")


def count_fields(index: QueryIndex, sink: TextIO) -> dict[str, int]:
    """Print ``field: count`` for every field, summing over all segments."""
    with track_run("count-fields"), create_span("fields.count"):
        segments = index.segments()
        counts: dict[str, int] = {}
        for field_name in sorted(index.field_universe):
            counts[field_name] = sum(field_doc_count(segment, field_name) for segment in segments)
            sink.write(f"{field_name}: {counts[field_name]}\n")
        logger.debug("Counted %d fields across %d segments", len(counts), len(segments))
        return counts


def enumerate_terms(index: QueryIndex, field_name: str, sink: TextIO) -> dict[str, int]:
    """Print ``term (count)`` for every term of a field in lexical order.

    Terms found in several segments are merged and their document
    frequencies summed.
    """
    if field_name not in index.field_universe:
        raise InvalidFieldError([field_name], prefix="Invalid field name")

    with track_run("enumerate-terms"), create_span("terms.enumerate", attributes={"field": field_name}):
        frequencies: Counter[str] = Counter()
        indexed = False
        for segment in index.segments():
            for term, doc_frequency in term_dictionary(segment, field_name):
                indexed = True
                frequencies[term] += doc_frequency
        if not indexed:
            raise ConfigurationError(f"Unindexed field: {field_name}")

        for term in sorted(frequencies):
            sink.write(f"{term} ({frequencies[term]})\n")
        logger.debug("Enumerated %d terms for field %s", len(frequencies), field_name)
        return dict(frequencies)

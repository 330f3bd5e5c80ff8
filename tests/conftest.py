"""Shared test fixtures and configuration."""

from collections.abc import Iterable, Sequence
import io
import os
from pathlib import Path

import pytest
from whoosh import index as whoosh_index
from whoosh.fields import ID, KEYWORD, STORED, TEXT, Schema

from index_query_tool.config import QueryToolSettings
from index_query_tool.dispatcher import QueryTool
from index_query_tool.index import QueryIndex, open_index


def library_schema() -> Schema:
    return Schema(
        path=ID(stored=True),
        title=TEXT(stored=True),
        body=TEXT(stored=True),
        tag=KEYWORD(stored=True),
        note=STORED(),
    )


# Doc ids follow insertion order: 0, 1, 2.
LIBRARY_DOCS = [
    {"path": "/a", "title": "hello world", "body": "lucene action", "tag": ["a", "b"]},
    {"path": "/b", "title": "hello there", "body": "python search", "tag": ["b"]},
    {"path": "/c", "title": "goodbye", "body": "lucene python", "note": "n/a"},
]


def build_index(directory: Path, schema: Schema, segments: Sequence[Iterable[dict]]) -> Path:
    """Write each batch of documents as its own segment."""
    directory.mkdir(parents=True, exist_ok=True)
    ix = whoosh_index.create_in(str(directory), schema)
    for documents in segments:
        writer = ix.writer()
        for document in documents:
            writer.add_document(**document)
        writer.commit(merge=False)
    return directory


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Keep ambient QUERY_TOOL_* variables and any .env file out of settings."""
    for key in list(os.environ):
        if key.upper().startswith("QUERY_TOOL_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def make_index(tmp_path: Path):
    """Build a throwaway index: ``make_index(name, schema, [segment, ...])``."""

    def _make(name: str, schema: Schema, segments: Sequence[Iterable[dict]]) -> Path:
        return build_index(tmp_path / name, schema, segments)

    return _make


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    return build_index(tmp_path / "library", library_schema(), [LIBRARY_DOCS])


@pytest.fixture
def segmented_library_dir(tmp_path: Path) -> Path:
    return build_index(tmp_path / "segmented", library_schema(), [LIBRARY_DOCS[:1], LIBRARY_DOCS[1:]])


@pytest.fixture
def library(library_dir: Path):
    with open_index([library_dir]) as index:
        yield index


@pytest.fixture
def run_tool(library: QueryIndex):
    """Run one directive against the library index and return the output text."""

    def _run(directive: Sequence[str], index: QueryIndex | None = None, **settings) -> str:
        sink = io.StringIO()
        tool = QueryTool(index or library, QueryToolSettings(**settings), sink)
        tool.run(list(directive))
        return sink.getvalue()

    return _run

"""Batch execution of query scripts.

A script holds one query per line::

    -q 'title:"hello world"'
    -q body:lucene -o /tmp/lucene.txt
    # comment lines and blank lines are skipped

Only ``-q``/``--query`` and ``-o``/``--output`` are accepted; every other
setting is inherited from the invoking configuration.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import logging
from pathlib import Path
import shlex
from typing import TextIO

from index_query_tool.errors import ConfigurationError, ScriptError
from index_query_tool.executor import QueryExecutor, QueryOutcome
from index_query_tool.observability import create_span


logger = logging.getLogger(__name__)

MODE_SIGIL = "%"
_OUTPUT_FLAGS = frozenset({"-o", "-output", "--output"})
_QUERY_FLAGS = frozenset({"-q", "-query", "--query"})


@dataclass(frozen=True, slots=True)
class ScriptRequest:
    """One parsed script line."""

    lineno: int
    query: str
    output_path: Path | None = None


def parse_script_line(line: str, script_path: str, lineno: int) -> ScriptRequest | None:
    """Parse one line; return None for blank and comment lines."""
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    try:
        args = shlex.split(stripped)
    except ValueError as exc:
        raise ScriptError(script_path, lineno, f"cannot parse line: {exc}") from exc

    query: str | None = None
    output_path: Path | None = None
    position = 0
    while position < len(args):
        flag = args[position]
        if flag not in _OUTPUT_FLAGS and flag not in _QUERY_FLAGS:
            raise ScriptError(script_path, lineno, "script supports only -q and -o")
        if position + 1 >= len(args):
            raise ScriptError(script_path, lineno, f"{flag} requires a value")
        value = args[position + 1]
        if flag in _OUTPUT_FLAGS:
            output_path = Path(value)
        else:
            if value.startswith(MODE_SIGIL):
                raise ScriptError(script_path, lineno, "script does not support % queries")
            query = value
        position += 2

    if query is None:
        raise ScriptError(script_path, lineno, "script line requires -q")
    return ScriptRequest(lineno=lineno, query=query, output_path=output_path)


def parse_script(lines: Iterable[str], script_path: str) -> Iterator[ScriptRequest]:
    for lineno, line in enumerate(lines, start=1):
        request = parse_script_line(line, script_path, lineno)
        if request is not None:
            yield request


class ScriptRunner:
    """Runs every line of a script as an independent query."""

    def __init__(self, executor: QueryExecutor, default_sink: TextIO) -> None:
        self.executor = executor
        self.default_sink = default_sink

    def load(self, script_path: str | Path) -> list[ScriptRequest]:
        """Parse every line and compile every query without running any."""
        path = Path(script_path)
        with path.open(encoding="utf-8") as handle:
            requests = list(parse_script(handle, str(path)))
        for request in requests:
            try:
                self.executor.compile(request.query)
            except ConfigurationError as exc:
                raise ScriptError(str(path), request.lineno, str(exc)) from exc
        return requests

    def run(self, script_path: str | Path) -> list[QueryOutcome]:
        path = Path(script_path)
        # A bad line aborts before any output file is created.
        requests = self.load(path)
        logger.info("Running %d queries from %s", len(requests), path)
        return [self._execute(request, path) for request in requests]

    def _execute(self, request: ScriptRequest, path: Path) -> QueryOutcome:
        with create_span("script.line", attributes={"script.path": str(path), "script.line": request.lineno}):
            if request.output_path is None:
                return self.executor.run_query(request.query, self.default_sink)
            with request.output_path.open("w", encoding="utf-8") as sink:
                return self.executor.run_query(request.query, sink)

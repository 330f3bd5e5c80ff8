"""Command-line entry point for querying prebuilt indexes."""

from __future__ import annotations

import argparse
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
import logging
from pathlib import Path
import sys
from typing import Any, TextIO

from pydantic import ValidationError

from index_query_tool.config import QueryToolSettings
from index_query_tool.dispatcher import QueryTool
from index_query_tool.errors import ConfigurationError
from index_query_tool.formatters import FormatKind
from index_query_tool.index import AnalyzerKind, open_index
from index_query_tool.observability import configure_logging, init_tracing


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIGURATION = 2
EXIT_IO = 3


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="index-query-tool",
        description="Query, enumerate and inspect prebuilt search indexes without modifying them",
    )
    parser.add_argument(
        "-i",
        "--index",
        action="append",
        required=True,
        type=Path,
        metavar="DIR",
        help="Index directory; repeat to query several indexes as one",
    )
    parser.add_argument(
        "-q",
        "--query",
        nargs="+",
        required=True,
        metavar="QUERY",
        help="Query string, or one of %%all, %%enumerate-fields, %%count-fields, "
        "%%enumerate-terms FIELD, %%ids ID..., %%id-file FILE, %%script FILE",
    )
    parser.add_argument("--fields", nargs="+", metavar="FIELD", help="Fields to include in output (defaults to all)")
    parser.add_argument("--sort-fields", action="store_true", default=None, help="Sort fields within each document")
    parser.add_argument(
        "--output-limit",
        "--query-limit",
        dest="output_limit",
        type=int,
        metavar="N",
        help="Max number of documents to output",
    )
    parser.add_argument(
        "--analyzer",
        choices=[kind.value for kind in AnalyzerKind],
        help=f"Analyzer applied to query text (default: {AnalyzerKind.KEYWORD.value})",
    )
    parser.add_argument("--query-field", metavar="FIELD", help="Default field for unqualified query terms")
    parser.add_argument("--regex", metavar="FIELD:/REGEX/", help="Only output documents whose field matches REGEX")
    parser.add_argument("--show-id", action="store_true", default=None, help="Show the internal document id")
    parser.add_argument("--show-score", action="store_true", default=None, help="Show the match score")
    parser.add_argument("--show-hits", action="store_true", default=None, help="Show the total hit count")
    parser.add_argument(
        "--suppress-names", action="store_true", default=None, help="Suppress printing of field names"
    )
    format_group = parser.add_mutually_exclusive_group()
    format_group.add_argument(
        "--format",
        choices=[kind.value for kind in FormatKind],
        help=f"Output format (default: {FormatKind.MULTILINE.value})",
    )
    format_group.add_argument(
        "--tabular",
        dest="format",
        action="store_const",
        const=FormatKind.TABULAR.value,
        help="Shorthand for --format tabular",
    )
    parser.add_argument("-o", "--output", type=Path, metavar="FILE", help="Write results to FILE instead of stdout")
    parser.add_argument("--log-level", help="Logging level for stderr diagnostics (default: warning)")
    parser.add_argument("--log-json", action="store_true", default=None, help="Emit structured JSON log lines")
    parser.add_argument(
        "--trace-console", action="store_true", default=None, help="Print finished trace spans to stderr"
    )
    return parser


_SETTINGS_OPTIONS = (
    "fields",
    "sort_fields",
    "output_limit",
    "analyzer",
    "query_field",
    "regex",
    "show_id",
    "show_score",
    "show_hits",
    "suppress_names",
    "format",
    "log_level",
    "log_json",
    "trace_console",
)


def settings_from_args(args: argparse.Namespace) -> QueryToolSettings:
    """Build settings, letting explicit options override the environment."""
    overrides: dict[str, Any] = {}
    for name in _SETTINGS_OPTIONS:
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return QueryToolSettings(**overrides)


@contextmanager
def _open_sink(path: Path | None) -> Iterator[TextIO]:
    if path is None:
        yield sys.stdout
        return
    with path.open("w", encoding="utf-8") as sink:
        yield sink


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
    except ValidationError as exc:
        configure_logging()
        logger.error("Invalid configuration: %s", exc)
        return EXIT_CONFIGURATION

    configure_logging(settings.log_level, settings.log_json)
    if settings.trace_console:
        init_tracing(console=True)

    try:
        with open_index(args.index) as index:
            tool = QueryTool(index, settings)
            mode = tool.prepare(args.query)
            with _open_sink(args.output) as sink:
                tool.dispatch(mode, sink)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION
    except OSError as exc:
        logger.error("I/O error: %s", exc)
        return EXIT_IO
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

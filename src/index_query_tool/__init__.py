"""
Read-only query tool for prebuilt search indexes.

This package provides:
- index: Opening indexes, parsing queries and streaming matches
- projection: Field selection and ordering for output
- filters: Regex post-filtering of retrieved documents
- formatters: Multiline, tabular and JSON output
- executor: Query execution and lookup by document id
- enumerators: Field listing, field counts and term dictionaries
- script: Batch execution of query scripts
- dispatcher: Routing of query directives to modes
- cli: Command-line entry point
"""

__version__ = "0.1.0"

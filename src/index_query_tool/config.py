"""Centralized configuration for index-query-tool using Pydantic Settings."""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from index_query_tool.formatters import FormatKind
from index_query_tool.index import AnalyzerKind


class QueryToolSettings(BaseSettings):
    """Strictly typed query configuration.

    Values come from ``QUERY_TOOL_*`` environment variables (or a ``.env``
    file) and are overridden by keyword arguments, which is how the CLI
    applies command-line options. Field names are checked against the index
    later, when a ``QueryTool`` is built; everything that can be checked
    without an index is validated here.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUERY_TOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Output selection
    fields: list[str] = Field(default_factory=list, description="Fields to include in output (defaults to all)")
    sort_fields: bool = Field(default=False, description="Sort fields within each document")
    output_limit: int | None = Field(default=None, ge=0, description="Max number of documents to output")

    # Query interpretation
    analyzer: AnalyzerKind = Field(default=AnalyzerKind.KEYWORD, description="Analyzer applied to query text")
    query_field: str | None = Field(default=None, description="Default field for unqualified query terms")
    regex: str | None = Field(default=None, description="Post-filter, syntax is field:/regex/")

    # Display
    show_id: bool = Field(default=False, description="Show the internal document id")
    show_score: bool = Field(default=False, description="Show the match score")
    show_hits: bool = Field(default=False, description="Show the total hit count")
    suppress_names: bool = Field(default=False, description="Suppress printing of field names")
    format: FormatKind = Field(default=FormatKind.MULTILINE, description="Output format")

    # Logging / tracing
    log_level: str = Field(default="warning", description="Logging level")
    log_json: bool = Field(default=False, description="Emit structured JSON log lines")
    trace_console: bool = Field(default=False, description="Print finished trace spans to stderr")

    @field_validator("format", mode="before")
    @classmethod
    def _normalize_format(cls, value: object) -> object:
        if isinstance(value, str):
            return value.lower()
        return value

    @model_validator(mode="after")
    def _check_tabular_fields(self) -> "QueryToolSettings":
        # Documents from one query may hold different fields, so columns only
        # line up when the field list is fixed up front.
        if self.format == FormatKind.TABULAR and not self.fields:
            raise ValueError("Tabular format requires an explicit field list (--fields)")
        return self

    @property
    def effective_output_limit(self) -> int | float:
        """The output limit, or infinity when none is set."""
        return float("inf") if self.output_limit is None else self.output_limit

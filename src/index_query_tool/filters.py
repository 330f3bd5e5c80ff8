"""Post-retrieval regex filtering of documents."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
import re
from typing import Any

from index_query_tool.errors import ConfigurationError, InvalidFieldError
from index_query_tool.projection import render_values


_REGEX_OPTION = re.compile(r"^(.*?):/(.*)/$", re.DOTALL)


@dataclass(frozen=True, slots=True)
class RegexFilter:
    """Accepts a document when one value of ``field_name`` fully matches ``pattern``."""

    field_name: str
    pattern: re.Pattern[str]

    def accepts(self, stored: Iterable[tuple[str, Any]]) -> bool:
        for name, value in stored:
            if name != self.field_name:
                continue
            if any(self.pattern.fullmatch(rendered) for rendered in render_values(value)):
                return True
        return False

    def validate(self, field_universe: Collection[str], selected_fields: Collection[str]) -> None:
        if self.field_name not in field_universe:
            raise InvalidFieldError([self.field_name], prefix="Invalid field name")
        if selected_fields and self.field_name not in selected_fields:
            raise ConfigurationError(f"Attempted to apply regex to field not in results: {self.field_name}")


def parse_regex_option(option: str) -> RegexFilter:
    """Parse the ``field:/regex/`` option syntax."""

    match = _REGEX_OPTION.match(option)
    if match is None:
        raise ConfigurationError(f"Invalid regex {option!r}, should be field:/regex/")
    field_name, expression = match.groups()
    try:
        pattern = re.compile(expression)
    except re.error as exc:
        raise ConfigurationError(f"Invalid regex {expression!r}: {exc}") from exc
    return RegexFilter(field_name=field_name, pattern=pattern)


def passes(regex_filter: RegexFilter | None, stored: Iterable[tuple[str, Any]]) -> bool:
    """Return True when no filter is configured or the filter accepts the document."""
    return regex_filter is None or regex_filter.accepts(stored)

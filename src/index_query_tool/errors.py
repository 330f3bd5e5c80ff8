"""Error kinds raised by the query tool.

Configuration errors are detected eagerly and carry enough context (offending
field names, script file and line) to fix the input. Query-syntax failures
from the search library and I/O failures (``OSError``) are not wrapped; they
propagate unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable


class ConfigurationError(ValueError):
    """Raised when settings, mode arguments or script lines are invalid."""


class InvalidFieldError(ConfigurationError):
    """Raised when one or more field names are not part of the index."""

    def __init__(self, field_names: Iterable[str], *, prefix: str = "Invalid field names") -> None:
        self.field_names = sorted(field_names)
        super().__init__(f"{prefix}: {self.field_names}")


class ScriptError(ConfigurationError):
    """Raised for a malformed script line; the message names file and line."""

    def __init__(self, script_path: str, lineno: int, reason: str) -> None:
        self.script_path = script_path
        self.lineno = lineno
        super().__init__(f"{script_path}:{lineno}: {reason}")

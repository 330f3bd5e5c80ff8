"""Ordered field/value views of stored documents."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


ID_FIELD = "<id>"
SCORE_FIELD = "<score>"
NULL_VALUE = "null"
SENTINEL_SCORE = 1.0


@dataclass(frozen=True, slots=True)
class DocumentProjection:
    """The fields of one document selected for output.

    ``field_names`` is ordered and duplicate-free; ``values`` maps each name to
    its rendered values in storage order. A selected field the document does
    not hold is listed in ``field_names`` with no values.
    """

    field_names: tuple[str, ...]
    values: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def values_for(self, name: str) -> tuple[str, ...]:
        return self.values.get(name, ())

    @property
    def is_empty(self) -> bool:
        return not any(self.values.values())


def render_value(value: Any) -> str:
    """Render a single stored value as text."""
    if value is None:
        return NULL_VALUE
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex()
    return str(value)


def render_values(value: Any) -> list[str]:
    """Render a stored value, expanding multi-valued fields in order."""
    if isinstance(value, (list, tuple)):
        return [render_value(item) for item in value]
    return [render_value(value)]


class FieldProjector:
    """Builds deterministic projections from stored field/value pairs.

    Field order is ``<id>`` (if shown), ``<score>`` (if shown), then the
    selected fields in configured order, or the document's own field order
    when nothing is selected. With ``sort_fields`` the whole list is sorted;
    values within a field keep their storage order.
    """

    def __init__(
        self,
        selected_fields: Sequence[str] = (),
        *,
        show_id: bool = False,
        show_score: bool = False,
        sort_fields: bool = False,
    ) -> None:
        self.selected_fields = tuple(dict.fromkeys(selected_fields))
        self.show_id = show_id
        self.show_score = show_score
        self.sort_fields = sort_fields

    @property
    def field_subset(self) -> tuple[str, ...] | None:
        """Stored fields to fetch, or ``None`` for all of them."""
        return self.selected_fields or None

    def project(self, doc_id: int, score: float, stored: Iterable[tuple[str, Any]]) -> DocumentProjection:
        names: list[str] = []
        values: dict[str, list[str]] = {}
        if self.show_id:
            names.append(ID_FIELD)
            values[ID_FIELD] = [str(doc_id)]
        if self.show_score:
            names.append(SCORE_FIELD)
            values[SCORE_FIELD] = [str(float(score))]

        stored = list(stored)
        if self.selected_fields:
            names.extend(self.selected_fields)
            wanted = set(self.selected_fields)
        else:
            names.extend(dict.fromkeys(name for name, _value in stored))
            wanted = None

        for name, value in stored:
            if wanted is not None and name not in wanted:
                continue
            values.setdefault(name, []).extend(render_values(value))

        if self.sort_fields:
            names.sort()
        return DocumentProjection(
            field_names=tuple(names),
            values={name: tuple(rendered) for name, rendered in values.items()},
        )

from __future__ import annotations

import re
from dataclasses import dataclass

from crudkit.core.errors import InvalidFilterError

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """`categoryId` -> `category_id`; already snake_cased names pass through."""
    text = str(name or "").strip()
    if not text:
        return text
    return _CAMEL_BOUNDARY_RE.sub("_", text).lower()


@dataclass(frozen=True)
class FieldPath:
    relations: tuple[str, ...]
    column: str

    @property
    def is_relation(self) -> bool:
        return bool(self.relations)

    def descend(self) -> "FieldPath":
        return FieldPath(self.relations[1:], self.column)

    def __str__(self) -> str:
        return ".".join((*self.relations, self.column))


def parse_field_path(key: str, *, external_id_column: str = "external_id") -> FieldPath:
    raw = str(key or "").strip()
    segments = [snake_case(part) for part in raw.split(".")]
    if not raw or any(not segment for segment in segments):
        raise InvalidFilterError(f'Invalid filter field "{key}"')
    *relations, column = segments
    if relations and column == "id":
        column = external_id_column
    return FieldPath(tuple(relations), column)

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from crudkit.query.builder import QueryBuilder
from crudkit.query.paths import snake_case

Dir = Literal["ASC", "DESC"]


@dataclass(frozen=True)
class SortClause:
    field: str
    dir: Dir


def parse_sort(sort: str | None) -> tuple[SortClause, ...]:
    """`"category,-price"` -> (category ASC, price DESC); empty tokens are ignored."""
    clauses = []
    for token in str(sort or "").split(","):
        token = token.strip()
        if not token:
            continue
        if token.startswith("-"):
            name = snake_case(token[1:])
            if name:
                clauses.append(SortClause(name, "DESC"))
            continue
        clauses.append(SortClause(snake_case(token), "ASC"))
    return tuple(clauses)


def apply_sort(query: QueryBuilder, sort: str | None) -> None:
    # The first clause is the primary key; with no clauses the store's natural order applies.
    for clause in parse_sort(sort):
        query.order_by(clause.field, clause.dir)

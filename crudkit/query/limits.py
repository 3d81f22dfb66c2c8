from __future__ import annotations

from crudkit.query.builder import QueryBuilder


def apply_limit(query: QueryBuilder, limit: int | None = None) -> None:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        return
    query.limit(limit)

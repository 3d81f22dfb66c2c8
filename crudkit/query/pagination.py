from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from crudkit.core.errors import InvalidPaginationError, SerializationMethodError
from crudkit.query.builder import QueryBuilder
from crudkit.schemas.search import PaginationMeta

_LOG = logging.getLogger("crudkit.query")


@dataclass
class PaginationResult:
    rows: list[Any] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)


def serialize_row(row: Any, method: str) -> Any:
    serializer = getattr(row, method, None)
    if not callable(serializer):
        raise SerializationMethodError(type(row).__name__, method)
    return serializer()


class Paginator:
    """Terminal stage: runs the query and keeps the last page of serialized rows.

    Paged mode counts the matching rows, fetches one page and fills `meta`
    with `current`, `perPage`, `pagesCount` and `count`. Full-scan mode
    (`skip_pagination=True`) fetches everything, runs no count query and
    leaves `meta` empty.
    """

    def __init__(self):
        self.rows: list[Any] = []
        self.meta: dict[str, Any] = {}

    def build(
        self,
        query: QueryBuilder,
        per_page: int,
        method: str = "to_dict",
        *,
        page: int = 1,
        skip_pagination: bool = False,
    ) -> PaginationResult:
        self.rows = []
        self.meta = {}

        if skip_pagination:
            self._build_without_pagination(query, method)
        else:
            self._build_with_pagination(query, per_page, method, page)
        return PaginationResult(rows=self.rows, meta=self.meta)

    def _build_without_pagination(self, query: QueryBuilder, method: str) -> None:
        self.rows = [serialize_row(row, method) for row in query.all()]
        _LOG.debug("full scan returned %s rows", len(self.rows))

    def _build_with_pagination(self, query: QueryBuilder, per_page: int, method: str, page: int) -> None:
        if isinstance(per_page, bool) or not isinstance(per_page, int) or per_page < 1:
            raise InvalidPaginationError(f"perPage must be a positive integer, got {per_page!r}")
        page = max(int(page or 1), 1)

        count = query.count()
        result = query.paginate(per_page, page)
        self.rows = [serialize_row(row, method) for row in result.items]
        self.meta = PaginationMeta(
            current=result.current_page,
            per_page=result.per_page,
            pages_count=math.ceil(count / result.per_page),
            count=count,
        ).model_dump(by_alias=True)
        _LOG.debug("page %s/%s returned %s of %s rows", page, self.meta["pagesCount"], len(self.rows), count)


def paginate(
    query: QueryBuilder,
    per_page: int,
    method: str = "to_dict",
    *,
    page: int = 1,
    skip_pagination: bool = False,
) -> PaginationResult:
    return Paginator().build(query, per_page, method, page=page, skip_pagination=skip_pagination)

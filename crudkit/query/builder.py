from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from sqlalchemy import and_, asc, cast, desc, func, or_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Query

from crudkit.core.errors import InvalidColumnError
from crudkit.query.coercion import coerce_filter_value
from crudkit.query.operators import POSTGRES_DIALECTS


@dataclass
class Page:
    items: list[Any]
    current_page: int
    per_page: int


class QueryBuilder(Protocol):
    """Predicate combinators the filter, sort and pagination stages rely on.

    Every `where_*` call is AND-ed with the predicates already on the builder,
    except inside `where_any`, whose group builder OR-s what it receives.
    """

    @property
    def dialect_name(self) -> str:
        ...

    def where_equals(self, column: str, value: Any) -> None:
        ...

    def where_not_equals(self, column: str, value: Any) -> None:
        ...

    def where_compare(self, column: str, operator: str, value: Any) -> None:
        ...

    def where_in(self, column: str, values: Sequence[Any]) -> None:
        ...

    def where_not_in(self, column: str, values: Sequence[Any]) -> None:
        ...

    def where_like(self, column: str, pattern: str, *, case_insensitive: bool) -> None:
        ...

    def where_null(self, column: str) -> None:
        ...

    def where_not_null(self, column: str) -> None:
        ...

    def where_between(self, column: str, lower: Any, upper: Any) -> None:
        ...

    def where_json_contains(self, column: str, key: str, value: Any) -> None:
        ...

    def where_any(self, build: Callable[["QueryBuilder"], None]) -> None:
        ...

    def where_has(self, relation: str, build: Callable[["QueryBuilder"], None]) -> None:
        ...

    def order_by(self, column: str, direction: str) -> None:
        ...

    def limit(self, count: int) -> None:
        ...

    def count(self) -> int:
        ...

    def paginate(self, per_page: int, page: int = 1) -> Page:
        """Return one page, never reaching past a cap set by `limit`. `count` ignores the cap."""

    def all(self) -> list[Any]:
        ...


_COMPARATORS = {
    "<": lambda col, value: col < value,
    "<=": lambda col, value: col <= value,
    ">": lambda col, value: col > value,
    ">=": lambda col, value: col >= value,
}


class SqlAlchemyQueryBuilder:
    """`QueryBuilder` over a legacy `Session.query(model)` query.

    The top-level builder filters its `Query` directly. Builders handed to
    `where_any` and `where_has` callbacks only collect expressions, which the
    parent combines with OR or wraps in `any()`/`has()`.
    """

    def __init__(self, query: Query | None, model: type, *, dialect_name: str | None = None):
        self.query = query
        self.model = model
        self.conditions: list[Any] = []
        self._cap: int | None = None
        if dialect_name is None:
            session = query.session if query is not None else None
            dialect_name = session.get_bind().dialect.name if session is not None else "default"
        self._dialect_name = dialect_name

    @classmethod
    def for_model(cls, db, model: type) -> "SqlAlchemyQueryBuilder":
        return cls(db.query(model), model)

    @property
    def dialect_name(self) -> str:
        return self._dialect_name

    def _scoped(self, model: type) -> "SqlAlchemyQueryBuilder":
        return SqlAlchemyQueryBuilder(None, model, dialect_name=self._dialect_name)

    def _column(self, name: str):
        mapper = sa_inspect(self.model)
        if name not in mapper.column_attrs:
            raise InvalidColumnError(self.model.__name__, name)
        return getattr(self.model, name)

    def _where(self, expr) -> None:
        if self.query is None:
            self.conditions.append(expr)
        else:
            self.query = self.query.filter(expr)

    def where_equals(self, column: str, value: Any) -> None:
        col = self._column(column)
        self._where(col == coerce_filter_value(col, value))

    def where_not_equals(self, column: str, value: Any) -> None:
        col = self._column(column)
        self._where(col != coerce_filter_value(col, value))

    def where_compare(self, column: str, operator: str, value: Any) -> None:
        col = self._column(column)
        self._where(_COMPARATORS[operator](col, coerce_filter_value(col, value)))

    def where_in(self, column: str, values: Sequence[Any]) -> None:
        col = self._column(column)
        self._where(col.in_([coerce_filter_value(col, value) for value in values]))

    def where_not_in(self, column: str, values: Sequence[Any]) -> None:
        col = self._column(column)
        self._where(col.not_in([coerce_filter_value(col, value) for value in values]))

    def where_like(self, column: str, pattern: str, *, case_insensitive: bool) -> None:
        col = self._column(column)
        self._where(col.ilike(pattern) if case_insensitive else col.like(pattern))

    def where_null(self, column: str) -> None:
        self._where(self._column(column).is_(None))

    def where_not_null(self, column: str) -> None:
        self._where(self._column(column).is_not(None))

    def where_between(self, column: str, lower: Any, upper: Any) -> None:
        col = self._column(column)
        self._where(col.between(coerce_filter_value(col, lower), coerce_filter_value(col, upper)))

    def where_json_contains(self, column: str, key: str, value: Any) -> None:
        col = self._column(column)
        path = f"$.{key}"
        if self._dialect_name in POSTGRES_DIALECTS:
            doc = cast(col, JSONB)
            # A scalar member matches both `{"k": v}` and `{"k": [..., v, ...]}`.
            expr = or_(doc.contains({key: value}), doc.contains({key: [value]}))
        elif self._dialect_name in {"mysql", "mariadb"}:
            expr = func.json_contains(col, json.dumps(value), path) == 1
        elif self._dialect_name == "sqlite":
            members = func.json_each(col, path).table_valued("value")
            expr = or_(
                func.json_extract(col, path) == value,
                select(members.c.value).where(members.c.value == value).exists(),
            )
        else:
            expr = func.json_extract(col, path) == value
        self._where(expr)

    def where_any(self, build: Callable[["SqlAlchemyQueryBuilder"], None]) -> None:
        group = self._scoped(self.model)
        build(group)
        if group.conditions:
            self._where(or_(*group.conditions))

    def where_has(self, relation: str, build: Callable[["SqlAlchemyQueryBuilder"], None]) -> None:
        prop = sa_inspect(self.model).relationships.get(relation)
        if prop is None:
            raise InvalidColumnError(self.model.__name__, relation, kind="relation")
        attr = getattr(self.model, relation)
        scoped = self._scoped(prop.mapper.class_)
        build(scoped)
        criterion = and_(*scoped.conditions) if scoped.conditions else None
        if prop.uselist:
            self._where(attr.any(criterion) if criterion is not None else attr.any())
        else:
            self._where(attr.has(criterion) if criterion is not None else attr.has())

    def order_by(self, column: str, direction: str) -> None:
        col = self._column(column)
        self.query = self.query.order_by(desc(col) if direction.upper() == "DESC" else asc(col))

    def limit(self, count: int) -> None:
        self._cap = count
        self.query = self.query.limit(count)

    def count(self) -> int:
        return self.query.limit(None).offset(None).order_by(None).count()

    def paginate(self, per_page: int, page: int = 1) -> Page:
        offset = (page - 1) * per_page
        size = per_page if self._cap is None else max(0, min(per_page, self._cap - offset))
        items = self.query.limit(size).offset(offset).all() if size else []
        return Page(items=items, current_page=page, per_page=per_page)

    def all(self) -> list[Any]:
        return self.query.all()

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Iterable

from crudkit.core.config import settings
from crudkit.core.errors import InvalidFilterError, UnsupportedOperatorError
from crudkit.query.builder import QueryBuilder
from crudkit.query.operators import COMPARISON_SYMBOLS, ILIKE_DIALECTS, LIST_OPERATORS, SearchOperator
from crudkit.query.paths import FieldPath, parse_field_path, snake_case

_LOG = logging.getLogger("crudkit.query")

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

FilterMap = dict[str, Any]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, Mapping)):
        return len(value) == 0
    return False


def split_list(value: Any) -> list[Any]:
    """`"a, b,,c"` -> `["a", "b", "c"]`; lists are trimmed the same way."""
    items = value if isinstance(value, (list, tuple, set)) else str(value).split(",")
    out = []
    for item in items:
        if isinstance(item, str):
            item = item.strip()
        if is_blank(item):
            continue
        out.append(item)
    return out


def _trim(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _bound(fragment: str, *, upper: bool) -> str:
    if _MONTH_RE.match(fragment):
        year, month = int(fragment[:4]), int(fragment[5:])
        if not 1 <= month <= 12:
            raise InvalidFilterError(f'Invalid month "{fragment}" in between filter')
        if upper:
            last_day = calendar.monthrange(year, month)[1]
            return f"{fragment}-{last_day:02d} 23:59:59"
        return f"{fragment}-01 00:00:00"
    if _DATE_RE.match(fragment):
        return f"{fragment} 23:59:59" if upper else f"{fragment} 00:00:00"
    return fragment


def between_bounds(value: Any) -> tuple[str, str]:
    """Expand a `btw` argument into inclusive lower/upper bounds.

    `2024-06` covers the whole month, `2024-01-01` the whole day, and
    `2024-01-01,2024-12-31` runs from the start of the first day to the end
    of the last. Fragments that are not bare dates are used unchanged.
    """
    fragments = split_list(value)
    if not fragments or len(fragments) > 2:
        raise InvalidFilterError(f'Between filter expects one or two values, got "{value}"')
    lower = str(fragments[0])
    upper = str(fragments[-1])
    return _bound(lower, upper=False), _bound(upper, upper=True)


def like_pattern(value: Any) -> str:
    return f"%{_trim(value)}%"


def _apply_like(query: QueryBuilder, column: str, value: Any, dialect: str) -> None:
    query.where_like(column, like_pattern(value), case_insensitive=dialect in ILIKE_DIALECTS)


def _apply_json(query: QueryBuilder, column: str, value: Any) -> None:
    if not isinstance(value, Mapping):
        raise InvalidFilterError(f'JSON filter on "{column}" expects filter[{column}][json][key]=value')
    for key, raw in value.items():
        values = split_list(raw)
        if not values:
            continue
        if len(values) == 1:
            query.where_json_contains(column, str(key), values[0])
            continue

        def _any_value(group: QueryBuilder, key=str(key), values=values) -> None:
            for item in values:
                group.where_json_contains(column, key, item)

        query.where_any(_any_value)


def _apply_leaf(query: QueryBuilder, column: str, operator: SearchOperator, value: Any, dialect: str) -> None:
    if operator is SearchOperator.EQUAL:
        query.where_equals(column, _trim(value))
    elif operator is SearchOperator.NOT_EQUAL:
        query.where_not_equals(column, _trim(value))
    elif operator in COMPARISON_SYMBOLS:
        query.where_compare(column, COMPARISON_SYMBOLS[operator], value)
    elif operator in LIST_OPERATORS:
        values = split_list(value)
        if not values:
            return
        if operator is SearchOperator.IN:
            query.where_in(column, values)
        else:
            query.where_not_in(column, values)
    elif operator is SearchOperator.LIKE:
        _apply_like(query, column, value, dialect)
    elif operator is SearchOperator.NOT_NULL:
        query.where_not_null(column)
    elif operator is SearchOperator.BETWEEN:
        lower, upper = between_bounds(value)
        query.where_between(column, lower, upper)
    elif operator in {SearchOperator.GREATER_THAN_OR_NULL, SearchOperator.LESS_THAN_OR_NULL}:
        symbol = ">" if operator is SearchOperator.GREATER_THAN_OR_NULL else "<"

        def _null_or_compare(group: QueryBuilder) -> None:
            group.where_null(column)
            group.where_compare(column, symbol, value)

        query.where_any(_null_or_compare)
    elif operator is SearchOperator.JSON:
        _apply_json(query, column, value)
    else:
        raise UnsupportedOperatorError(operator.value)


def apply_condition(
    query: QueryBuilder,
    path: FieldPath,
    operator: SearchOperator,
    value: Any,
    *,
    dialect: str,
) -> None:
    """Apply one operator, nesting one relation-existence scope per relation segment."""
    if not path.is_relation:
        _apply_leaf(query, path.column, operator, value, dialect)
        return

    inner = path.descend()

    def _scoped(sub: QueryBuilder) -> None:
        apply_condition(sub, inner, operator, value, dialect=dialect)

    query.where_has(path.relations[0], _scoped)


def _operator_entries(param: Any) -> Iterable[tuple[SearchOperator, Any]]:
    if isinstance(param, Mapping):
        for raw_operator, value in param.items():
            yield SearchOperator.parse(raw_operator), value
    else:
        yield SearchOperator.EQUAL, param


def apply_term_search(query: QueryBuilder, term: Any, term_fields: Iterable[str], *, dialect: str) -> None:
    fields = [snake_case(field) for field in term_fields]
    if is_blank(term) or not fields:
        return

    def _any_field(group: QueryBuilder) -> None:
        for field in fields:
            _apply_like(group, field, term, dialect)

    _LOG.debug("term search %r over %s", term, fields)
    query.where_any(_any_field)


def apply_filters(
    query: QueryBuilder,
    filters: Mapping[str, Any] | None,
    *,
    term_fields: Iterable[str] = (),
    term_field_name: str | None = None,
    modify_filters: Callable[[FilterMap], FilterMap] | None = None,
    dialect: str | None = None,
    external_id_column: str | None = None,
) -> None:
    """AND every entry of a raw `filter[...]` map onto `query`.

    `modify_filters` sees a copy of the raw map once, before any operator is
    interpreted, and may add, drop or replace entries. Entries with a blank
    argument are skipped, except `nn` which takes none.
    """
    entries: FilterMap = dict(filters or {})
    if modify_filters is not None:
        entries = dict(modify_filters(entries) or {})
    if not entries:
        return

    dialect = dialect if dialect is not None else query.dialect_name
    term_key = term_field_name or settings.TERM_FIELD_NAME
    external_id_column = external_id_column or settings.EXTERNAL_ID_COLUMN

    if term_key in entries:
        apply_term_search(query, entries.pop(term_key), term_fields, dialect=dialect)

    for key, param in entries.items():
        path = parse_field_path(key, external_id_column=external_id_column)
        for operator, value in _operator_entries(param):
            if operator is not SearchOperator.NOT_NULL and is_blank(value):
                _LOG.debug("skip blank filter %s[%s]", key, operator.value)
                continue
            apply_condition(query, path, operator, value, dialect=dialect)

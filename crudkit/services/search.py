from __future__ import annotations

import csv
import enum
import io
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Iterator

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session

from crudkit.core.config import settings
from crudkit.core.errors import InvalidColumnError, InvalidFilterError
from crudkit.models.common import serialize_value
from crudkit.query.builder import QueryBuilder, SqlAlchemyQueryBuilder
from crudkit.query.filters import apply_filters
from crudkit.query.limits import apply_limit
from crudkit.query.pagination import PaginationResult, paginate
from crudkit.query.paths import snake_case
from crudkit.query.sorting import apply_sort
from crudkit.schemas.search import OptionRow, SearchParams, SearchResponse
from crudkit.services.resource import CrudResource

_LOG = logging.getLogger("crudkit.search")


def _apply_search_pipeline(resource: CrudResource, query: QueryBuilder, params: SearchParams) -> None:
    apply_filters(
        query,
        params.filters,
        term_fields=resource.term_fields,
        term_field_name=resource.resolved_term_field_name(),
        modify_filters=resource.modify_filters,
    )
    apply_sort(query, params.sort)
    apply_limit(query, params.limit)


def run_search(resource: CrudResource, params: SearchParams, db: Session) -> PaginationResult:
    query = SqlAlchemyQueryBuilder.for_model(db, resource.model)
    resource.modify_search_query(query)
    _apply_search_pipeline(resource, query, params)
    return paginate(
        query,
        params.per_page or resource.resolved_per_page(),
        resource.resolved_serialize_method(),
        page=params.page,
        skip_pagination=params.skip_pagination,
    )


def search_service(resource: CrudResource, params: SearchParams, db: Session) -> dict[str, Any]:
    result = run_search(resource, params, db)
    return SearchResponse(data=result.rows, meta={"pagination": result.meta}).model_dump()


def _require_column(model: type, name: str) -> str:
    column = snake_case(name)
    if column not in sa_inspect(model).column_attrs:
        raise InvalidColumnError(model.__name__, name)
    return column


def options_service(
    resource: CrudResource,
    label: str | None,
    value: str | None,
    params: SearchParams,
    db: Session,
) -> dict[str, Any]:
    if not str(label or "").strip():
        raise InvalidFilterError('"label" is required')
    model = resource.model
    label_column = _require_column(model, str(label))
    value_column = _require_column(model, value or settings.OPTIONS_DEFAULT_VALUE)

    query = SqlAlchemyQueryBuilder.for_model(db, model)
    resource.modify_options_query(query)
    apply_filters(
        query,
        params.filters,
        term_fields=resource.term_fields,
        term_field_name=resource.resolved_term_field_name(),
        modify_filters=resource.modify_filters,
    )
    query.order_by(label_column, "ASC")
    apply_limit(query, params.limit)

    rows = [
        OptionRow(
            label=serialize_value(getattr(row, label_column)),
            value=serialize_value(getattr(row, value_column)),
        ).model_dump()
        for row in query.all()
    ]
    resource.after_options(rows)
    return SearchResponse(data=rows).model_dump()


def get_nested_value(row: Any, path: str) -> Any:
    current = row
    for segment in path.split("."):
        if isinstance(current, Mapping):
            current = current.get(segment)
        else:
            current = getattr(current, segment, None)
        if current is None:
            return None
    return current


def _csv_line(values: list[Any]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator="\n").writerow(values)
    return buffer.getvalue()


def export_csv_service(resource: CrudResource, params: SearchParams, db: Session) -> tuple[str, Iterator[str]]:
    """Run the search pipeline eagerly and return (file name, CSV line iterator)."""
    query = SqlAlchemyQueryBuilder.for_model(db, resource.model)
    resource.modify_export_query(query)
    _apply_search_pipeline(resource, query, params)
    result = paginate(
        query,
        params.per_page or settings.EXPORT_PER_PAGE,
        resource.resolved_export_serialize_method(),
        page=params.page,
        skip_pagination=params.skip_pagination,
    )

    columns = resource.csv_columns
    if isinstance(columns, Mapping):
        paths, headers = list(columns.keys()), list(columns.values())
    else:
        paths, headers = list(columns), []

    def _lines() -> Iterator[str]:
        if headers:
            yield _csv_line(headers)
        for row in result.rows:
            values = []
            for path in paths:
                value = get_nested_value(row, path)
                values.append(value.value if isinstance(value, enum.Enum) else value)
            yield _csv_line(values)

    _LOG.info("export %s rows=%s", resource.name, len(result.rows))
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S_")
    return f"{stamp}{resource.csv_file_name}", _lines()

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from crudkit.core.config import settings
from crudkit.core.errors import InvalidPaginationError
from crudkit.schemas.search import SearchParams

_BRACKET_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT_RE = re.compile(r"\[([^\[\]]*)\]")

TRUTHY = {"1", "true", "yes", "y", "on"}


def _key_segments(key: str) -> list[str]:
    match = _BRACKET_KEY_RE.match(key)
    if match is None:
        return [key]
    return [match.group(1), *_SEGMENT_RE.findall(match.group(2))]


def parse_bracket_params(items: Iterable[tuple[str, str]]) -> dict[str, Any]:
    """Turn `filter[price][gte]=100` style pairs into nested dicts.

    Repeated keys keep the last value; `key[]=a&key[]=b` collects a list.
    """
    out: dict[str, Any] = {}
    for key, value in items:
        segments = _key_segments(key)
        node = out
        for index, segment in enumerate(segments):
            last = index == len(segments) - 1
            if segment == "" and index > 0:
                continue
            next_is_list = not last and segments[index + 1] == ""
            if last:
                node[segment] = value
            elif next_is_list and index + 1 == len(segments) - 1:
                current = node.get(segment)
                if not isinstance(current, list):
                    current = []
                    node[segment] = current
                current.append(value)
                break
            else:
                child = node.get(segment)
                if not isinstance(child, dict):
                    child = {}
                    node[segment] = child
                node = child
    return out


def _int_param(name: str, raw: Any) -> int | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidPaginationError(f'"{name}" must be an integer, got "{raw}"')


def parse_search_params(
    query_params: Mapping[str, Any] | Iterable[tuple[str, str]],
    *,
    term_field_name: str | None = None,
) -> SearchParams:
    items = query_params.items() if isinstance(query_params, Mapping) else query_params
    parsed = parse_bracket_params(items)

    raw_filters = parsed.get("filter")
    filters = dict(raw_filters) if isinstance(raw_filters, dict) else {}
    term_key = term_field_name or settings.TERM_FIELD_NAME
    if isinstance(parsed.get(term_key), str) and term_key not in filters:
        filters[term_key] = parsed[term_key]

    per_page = _int_param("perPage", parsed.get("perPage"))
    if per_page is not None and per_page < 1:
        raise InvalidPaginationError(f"perPage must be a positive integer, got {per_page}")
    page = _int_param("page", parsed.get("page"))
    if page is None:
        page = 1
    elif page < 1:
        raise InvalidPaginationError(f"page must be a positive integer, got {page}")

    sort = parsed.get("sort")
    return SearchParams(
        filters=filters,
        sort=sort if isinstance(sort, str) else "",
        per_page=per_page,
        page=page,
        skip_pagination=str(parsed.get("skipPagination") or "").strip().lower() in TRUTHY,
        limit=_int_param("limit", parsed.get("limit")),
    )

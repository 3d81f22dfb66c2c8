from __future__ import annotations

from enum import Enum

from crudkit.core.errors import UnsupportedOperatorError


class SearchOperator(str, Enum):
    """Operators accepted in `filter[field][operator]=value`.

    `gtn` and `ltn` deliberately include NULL rows: `stock[gtn]=10` matches
    rows with no stock recorded as well as rows with more than ten.
    """

    EQUAL = "eq"
    NOT_EQUAL = "neq"
    LESS_THAN = "lt"
    LESS_THAN_EQUAL = "lte"
    GREATER_THAN = "gt"
    GREATER_THAN_EQUAL = "gte"
    IN = "in"
    NOT_IN = "nin"
    LIKE = "like"
    NOT_NULL = "nn"
    BETWEEN = "btw"
    GREATER_THAN_OR_NULL = "gtn"
    LESS_THAN_OR_NULL = "ltn"
    JSON = "json"

    @classmethod
    def parse(cls, raw: object) -> "SearchOperator":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise UnsupportedOperatorError(str(raw))


# Comparison operators handed to the builder as SQL symbols.
COMPARISON_SYMBOLS = {
    SearchOperator.LESS_THAN: "<",
    SearchOperator.LESS_THAN_EQUAL: "<=",
    SearchOperator.GREATER_THAN: ">",
    SearchOperator.GREATER_THAN_EQUAL: ">=",
}

# Operators whose argument is a comma-separated list.
LIST_OPERATORS = {SearchOperator.IN, SearchOperator.NOT_IN}

# PostgreSQL dialect names: LIKE is case-sensitive there, ILIKE and JSONB `@>` exist.
POSTGRES_DIALECTS = frozenset({"postgresql", "pgsql"})
ILIKE_DIALECTS = POSTGRES_DIALECTS

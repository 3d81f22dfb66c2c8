from __future__ import annotations

from typing import Any, ClassVar, Mapping, Sequence

from crudkit.core.config import settings
from crudkit.query.builder import QueryBuilder


class CrudResource:
    """Declarative description of one model exposed through the CRUD actions.

    Subclass it, set `model`, and override the hooks to add base scopes or
    rewrite incoming filters::

        class ProductResource(CrudResource):
            model = Product
            prefix = "products"
            term_fields = ("name", "description")

            def modify_search_query(self, query):
                query.where_equals("is_active", True)
    """

    model: ClassVar[type]
    prefix: ClassVar[str] = ""
    term_fields: ClassVar[Sequence[str]] = ()
    term_field_name: ClassVar[str | None] = None
    per_page: ClassVar[int | None] = None
    serialize_method: ClassVar[str | None] = None
    export_serialize_method: ClassVar[str | None] = None
    csv_columns: ClassVar[Sequence[str] | Mapping[str, str]] = ()
    csv_file_name: ClassVar[str] = "export.csv"

    @property
    def name(self) -> str:
        return self.prefix or self.model.__tablename__

    def resolved_term_field_name(self) -> str:
        return self.term_field_name or settings.TERM_FIELD_NAME

    def resolved_per_page(self) -> int:
        return self.per_page or settings.DEFAULT_PER_PAGE

    def resolved_serialize_method(self) -> str:
        return self.serialize_method or settings.SERIALIZE_METHOD

    def resolved_export_serialize_method(self) -> str:
        return self.export_serialize_method or self.resolved_serialize_method()

    def modify_search_query(self, query: QueryBuilder) -> None:
        pass

    def modify_export_query(self, query: QueryBuilder) -> None:
        pass

    def modify_options_query(self, query: QueryBuilder) -> None:
        pass

    def modify_filters(self, filters: dict[str, Any]) -> dict[str, Any]:
        return filters

    def after_options(self, rows: list[dict[str, Any]]) -> None:
        pass

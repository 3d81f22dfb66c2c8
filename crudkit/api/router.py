from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from crudkit.db.session import get_db
from crudkit.services.query_params import parse_search_params
from crudkit.services.resource import CrudResource
from crudkit.services.search import export_csv_service, options_service, search_service


def build_crud_router(resource: CrudResource) -> APIRouter:
    router = APIRouter(tags=[resource.name])

    def _params(request: Request):
        return parse_search_params(
            request.query_params.multi_items(),
            term_field_name=resource.resolved_term_field_name(),
        )

    @router.get("")
    def search(request: Request, db: Session = Depends(get_db)):
        return search_service(resource, _params(request), db)

    @router.get("/options")
    def options(
        request: Request,
        label: str | None = None,
        value: str | None = None,
        db: Session = Depends(get_db),
    ):
        return options_service(resource, label, value, _params(request), db)

    @router.get("/export")
    def export_csv(request: Request, db: Session = Depends(get_db)):
        file_name, lines = export_csv_service(resource, _params(request), db)
        return StreamingResponse(
            lines,
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="{file_name}"',
                "Cache-Control": "max-age=0, no-cache, must-revalidate, proxy-revalidate",
            },
        )

    return router

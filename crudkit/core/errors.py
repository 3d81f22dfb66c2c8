from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

_LOG = logging.getLogger("crudkit.search")


class CrudQueryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientQueryError(CrudQueryError):
    """Malformed search request; reported to the caller as a 400."""

    status_code = 400


class UnsupportedOperatorError(ClientQueryError):
    def __init__(self, operator: str):
        super().__init__(f'Unsupported filter operator "{operator}"')
        self.operator = operator


class InvalidColumnError(ClientQueryError):
    def __init__(self, model_name: str, name: str, kind: str = "column"):
        super().__init__(f'Unknown {kind} "{name}" on {model_name}')
        self.model_name = model_name
        self.name = name
        self.kind = kind


class InvalidFilterError(ClientQueryError):
    pass


class InvalidPaginationError(ClientQueryError):
    pass


class SerializationMethodError(CrudQueryError):
    def __init__(self, row_type: str, method: str):
        super().__init__(f'{row_type} has no serialization method "{method}"')
        self.row_type = row_type
        self.method = method


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClientQueryError)
    async def _client_query_error_handler(request: Request, exc: ClientQueryError):
        _LOG.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"status": "fail", "message": exc.message})

    @app.exception_handler(CrudQueryError)
    async def _crud_query_error_handler(request: Request, exc: CrudQueryError):
        _LOG.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
        return JSONResponse(status_code=exc.status_code, content={"status": "error", "message": exc.message})

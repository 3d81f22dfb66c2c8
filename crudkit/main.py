import logging
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crudkit.api.router import build_crud_router
from crudkit.core.config import settings
from crudkit.core.errors import install_error_handlers
from crudkit.core.http_hardening import install_http_hardening
from crudkit.services.resource import CrudResource


def create_app(resources: Iterable[CrudResource] = ()) -> FastAPI:
    logging.getLogger("crudkit").setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(title=settings.APP_NAME, version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_http_hardening(app)
    install_error_handlers(app)

    for resource in resources:
        app.include_router(build_crud_router(resource), prefix=f"/{resource.name.strip('/')}")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app

"""
FastAPI application entry point for the record service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from megumi.config import get_settings
from megumi.dependencies import reset_record_store
from megumi.errors import MegumiError, StorageFailure
from megumi.routes import router

logger = logging.getLogger(__name__)

# Category landing pages served from the static directory.
PAGE_ROUTES = {
    "/boys": "boys.html",
    "/girls": "girls.html",
    "/parents": "parents.html",
}


def _page_endpoint(page: Path):
    def serve_page():
        return FileResponse(page)

    return serve_page


async def handle_megumi_error(request: Request, exc: MegumiError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    reset_record_store()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Megumi Backend (FastAPI)", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.add_exception_handler(MegumiError, handle_megumi_error)
    app.include_router(router, prefix=settings.api_prefix)

    if settings.static_dir:
        static_dir = Path(settings.static_dir)
        if static_dir.is_dir():
            for route, filename in PAGE_ROUTES.items():
                page = static_dir / filename
                if page.is_file():
                    app.add_api_route(
                        route,
                        _page_endpoint(page),
                        methods=["GET"],
                        include_in_schema=False,
                    )
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            logger.warning("Static directory %s not found; not serving files", static_dir)
    return app


app = create_app()

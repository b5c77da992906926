"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vector_search import __version__
from vector_search.api.routes import api_router
from vector_search.config import Settings, settings as default_settings
from vector_search.exceptions import (
    InvalidInput,
    ProviderMisconfigured,
    ProviderUnavailable,
    StorageUnavailable,
    VectorSearchDisabled,
    VectorSearchError,
)
from vector_search.services.vector_search import VectorSearchService, build_service

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[VectorSearchError], int] = {
    InvalidInput: 400,
    ProviderUnavailable: 502,
    ProviderMisconfigured: 503,
    VectorSearchDisabled: 503,
    StorageUnavailable: 503,
}


def status_code_for(error: VectorSearchError) -> int:
    for error_type, code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return code
    return 500


async def vector_search_error_handler(request: Request, exc: VectorSearchError) -> JSONResponse:
    """Translate core errors into JSON error responses."""
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=code,
        content={"success": False, "error": str(exc)},
    )


def create_app(
    settings: Settings | None = None,
    service: VectorSearchService | None = None,
) -> FastAPI:
    """Build the application; ``service`` is created at startup unless provided."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        owned = service is None
        app.state.vector_search = service or build_service(settings)

        yield

        if owned:
            app.state.vector_search.close()

    app = FastAPI(
        title="Vector Search",
        description="Semantic product search over catalog embeddings",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "sw-access-key"],
    )

    @app.middleware("http")
    async def add_security_headers(request, call_next):
        """Add security headers to all responses."""
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    app.add_exception_handler(VectorSearchError, vector_search_error_handler)
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "Vector Search",
            "version": __version__,
            "docs": "/api/docs",
        }

    return app


app = create_app()

"""
comply_gateway.api.app

FastAPI app factory for the gateway.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own the backend client lifecycle (composition root) and close it on shutdown.
- Register the exception handlers that render every error as `{error, message}`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

from comply_gateway import __version__
from comply_gateway.api.gateway import error_response, validation_message
from comply_gateway.api.routers.health import router as health_router
from comply_gateway.api.routers.vaults import router as vaults_router
from comply_gateway.api.routers.workspaces import router as workspaces_router
from comply_gateway.backend.lifecycle import ClientLifecycle
from comply_gateway.errors import GatewayError, UnexpectedError, ValidationError
from comply_gateway.observability.logging import configure_logging, get_logger
from comply_gateway.observability.middleware import RequestContextMiddleware
from comply_gateway.settings import Secrets, Settings

log = get_logger(__name__)

INTERNAL_ERROR = "Internal Server Error"


def create_app(
    *,
    settings: Settings,
    secrets: Secrets,
    lifecycle: ClientLifecycle | None = None,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(
        service_name=settings.service_name,
        level=settings.logging.level,
        fmt=settings.logging.format,
    )

    lifecycle = lifecycle or ClientLifecycle(settings=settings, secrets=secrets)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        log.info(
            "startup",
            host=settings.server.host,
            port=settings.server.port,
            tls=settings.server.tls_enabled,
        )
        try:
            yield
        finally:
            await lifecycle.aclose()
            log.info("shutdown")

    app = FastAPI(
        title="Wecan Comply Gateway",
        version=__version__,
        description="Simplified REST API in front of the Wecan Comply backend",
        docs_url="/api-docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.lifecycle = lifecycle

    app.add_middleware(RequestContextMiddleware)
    if settings.cors.enabled:
        origins = [o.strip() for o in settings.cors.origin.split(",") if o.strip()]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health_router, tags=["health"])
    app.include_router(workspaces_router)
    app.include_router(vaults_router)

    _register_exception_handlers(app)
    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def _gateway_error(_: Request, exc: GatewayError) -> JSONResponse:
        return error_response(exc, failure=INTERNAL_ERROR)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        # FastAPI would answer 422; the public contract is 400 with the shared envelope.
        return error_response(ValidationError(validation_message(exc.errors())), failure=INTERNAL_ERROR)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "error": "Not Found",
                    "message": f"Route {request.method} {request.url.path} not found",
                },
                headers=exc.headers,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": HTTPStatus(exc.status_code).phrase, "message": str(exc.detail)},
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def _unhandled(_: Request, exc: Exception) -> JSONResponse:
        # Logged with traceback by error_response; the caller gets the generic message.
        return error_response(UnexpectedError.wrap(exc), failure=INTERNAL_ERROR)


# --- Module Notes -----------------------------------------------------------
# Route-level backend failures never reach these handlers: `gateway.forward` renders them
# with the route's own failure label.

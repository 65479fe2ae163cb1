"""
FastAPI application factory - Outlook Helper API
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi_async_sqlalchemy import SQLAlchemyMiddleware, db
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.middlewares.auto_commit import AutoCommitMiddleware
from app.api.routes import api_router
from app.api.utils.errors import create_error_response
from app.container import ApplicationContainer, get_wire_container
from app.database import db_manager
from app.exceptions import BaseError, ErrorType
from settings import settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api"
PUBLIC_PATHS = {f"{API_PREFIX}/health", f"{API_PREFIX}/auth/login"}


def _setup_error_handlers(app: FastAPI) -> None:
    """Setup FastAPI exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle FastAPI and Starlette HTTPException errors."""
        return create_error_response(str(exc.detail), None, exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Handle malformed request bodies and parameters."""
        details = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return create_error_response(ErrorType.INVALID_DATA.value, details, 422)

    @app.exception_handler(BaseError)
    async def handle_app_error(request: Request, exc: BaseError) -> JSONResponse:
        """Handle custom BaseError exceptions."""
        if exc.status_code >= 400 and exc.status_code < 500:
            logger.warning(f"A user-related (HTTP 4xx) error occurred; {exc}", extra=exc.extra)
        else:
            logger.exception(f"An app exception occurred; {exc}", extra=exc.extra)

        return create_error_response(exc.error_type.value, exc.message, exc.status_code)

    @app.exception_handler(Exception)
    async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
        """Handle any unhandled exceptions."""
        logger.exception(f"An unhandled exception occurred; error: {exc}")

        return create_error_response(ErrorType.UNHANDLED_EXCEPTION.value, None, 500)


def _lifespan(container: ApplicationContainer) -> Any:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.database.auto_create:
            await db_manager.create_tables()

        async with db():
            operator = await container.controllers.auth_controller().ensure_operator()
            await db.session.commit()
        logger.info(f"Outlook Helper started; operator account: {operator.username}")

        yield

        await container.controllers.gateway_client().close_session()
        await db_manager.close()

    return lifespan


def create_app(container: ApplicationContainer | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    container = container or get_wire_container()
    app = FastAPI(
        title=settings.server.app_name,
        description="Mailbox credential manager backed by a remote mail gateway",
        version="1.0.0",
        lifespan=_lifespan(container),
        docs_url="/docs" if settings.environment.serves_docs else None,
    )
    app.state.container = container

    # Configure OpenAPI security scheme for Bearer token
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
                "description": "Session token returned by /api/auth/login (without 'Bearer ' prefix)",
            }
        }

        for path in openapi_schema["paths"]:
            if path in PUBLIC_PATHS:
                continue
            for method in openapi_schema["paths"][path]:
                if method in ["get", "post", "put", "delete", "patch"]:
                    openapi_schema["paths"][path][method]["security"] = [{"BearerAuth": []}]

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    setattr(app, "openapi", custom_openapi)

    _setup_error_handlers(app)

    # Added first so it runs last, inside the session opened by SQLAlchemyMiddleware
    app.add_middleware(AutoCommitMiddleware)
    app.add_middleware(SQLAlchemyMiddleware, custom_engine=db_manager.init_db())

    origins = settings.server.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=API_PREFIX)

    # The single-page client is optional; API routes are registered first and take precedence
    if os.path.isdir(settings.server.static_dir):
        app.mount("/", StaticFiles(directory=settings.server.static_dir, html=True), name="static")
    else:
        logger.info(f"Static directory {settings.server.static_dir} not found; serving the API only")

    return app

"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from call_router.api import calls, health, routing, voice
from call_router.config import get_settings, require_valid_settings
from call_router.core.exceptions import CallRouterError
from call_router.core.logging import get_logger, setup_logging
from call_router.db import close_db, init_db
from call_router.dependencies import cleanup_dependencies


def call_router_exception_handler(request: Request, exc: CallRouterError) -> JSONResponse:
    """Handle domain errors with their own status code and error code."""
    log = get_logger(__name__)
    log.warning(
        "Request failed",
        error_code=exc.error_code,
        error=exc.message,
        path=request.url.path,
    )
    content = exc.to_dict()
    content["status_code"] = exc.status_code
    return JSONResponse(status_code=exc.status_code, content=content)


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with structured response.

    Provides consistent error format across all HTTP errors.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": _status_code_to_error_type(exc.status_code),
            "message": str(exc.detail),
            "status_code": exc.status_code,
        },
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed field information."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        errors.append({
            "field": field or "request",
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": errors,
        },
    )


def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions.

    Logs the error and returns a generic 500 response without exposing
    internal details in production.
    """
    log = get_logger(__name__)
    log.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    settings = get_settings()
    detail = str(exc) if settings.debug else "An internal error occurred"

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": detail,
        },
    )


def _status_code_to_error_type(status_code: int) -> str:
    """Map HTTP status codes to error type strings."""
    error_types = {
        400: "bad_request",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        422: "validation_error",
        500: "internal_error",
        502: "bad_gateway",
        503: "service_unavailable",
    }
    return error_types.get(status_code, "error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = require_valid_settings()
    log = get_logger(__name__)

    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        service_name=settings.service_name,
    )

    log.info(
        "Starting call router",
        version="0.1.0",
        environment=settings.environment,
    )

    log.info("Initializing database")
    await init_db()
    log.info("Database initialized successfully")

    yield

    log.info("Shutting down call router")
    await cleanup_dependencies()
    await close_db()
    log.info("Database connections closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Dental Call Router",
        description="Call routing and TwiML generation for dental practice phone lines",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Exception handlers (most specific first)
    app.add_exception_handler(CallRouterError, call_router_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    cors_origins = (
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
        if settings.debug
        else []
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(voice.router, prefix="/api/v1", tags=["Twilio Voice"])
    app.include_router(routing.router, prefix="/api/v1", tags=["Call Routing"])
    app.include_router(calls.router, prefix="/api/v1", tags=["Calls"])

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "call_router.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()

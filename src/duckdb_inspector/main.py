"""DuckDB Inspector - FastAPI application."""

import logging
import time
import uuid
from contextlib import asynccontextmanager

import duckdb
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from duckdb_inspector.config import settings
from duckdb_inspector.errors import ClientInputError, InspectorError
from duckdb_inspector.metrics import ERROR_COUNT, SERVICE_UP, set_service_info
from duckdb_inspector.middleware.metrics import MetricsMiddleware, normalize_path
from duckdb_inspector.routers import backend, database, metrics, query, realtime, tables
from duckdb_inspector.service import InspectorService

CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Origin", "Content-Type", "Authorization"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
}


def setup_logging(debug: bool | None = None) -> None:
    """Configure structured logging."""
    debug = settings.debug if debug is None else debug
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup; release subscribers and the handle on shutdown."""
    service: InspectorService = app.state.service
    logger.info(
        "application_startup",
        version=settings.api_version,
        database=service.gateway.path,
    )

    try:
        await run_in_threadpool(service.gateway.open)
    except InspectorError as e:
        logger.error("database_open_failed", error=e.message)
        raise

    set_service_info(settings.api_version, duckdb.__version__)
    SERVICE_UP.set(1)

    yield

    await service.channel.close_all()
    service.gateway.close()
    SERVICE_UP.set(0)
    logger.info("application_shutdown")


async def cors_headers_middleware(request: Request, call_next) -> Response:
    """Cross-origin headers on every response; any OPTIONS is answered directly."""
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)

    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "success": False},
    )


async def inspector_error_handler(request: Request, exc: InspectorError) -> JSONResponse:
    """Render service errors as the JSON error envelope."""
    endpoint = normalize_path(request.url.path)
    ERROR_COUNT.labels(type=type(exc).__name__, endpoint=endpoint).inc()

    if isinstance(exc, ClientInputError):
        logger.info("client_input_rejected", path=request.url.path, error=exc.message)
    else:
        logger.error(
            "engine_error",
            method=request.method,
            path=request.url.path,
            error=exc.message,
            error_type=type(exc).__name__,
        )
    return _error_response(exc.status_code, exc.message)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and parameters are client errors (400)."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    ERROR_COUNT.labels(type="RequestValidationError", endpoint=normalize_path(request.url.path)).inc()
    logger.info("request_validation_failed", path=request.url.path, error=message)
    return _error_response(400, message or "Invalid request")


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail), "success": False},
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions; only the message reaches the client."""
    ERROR_COUNT.labels(type=type(exc).__name__, endpoint=normalize_path(request.url.path)).inc()
    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return _error_response(500, str(exc))


def create_app(service: InspectorService | None = None) -> FastAPI:
    """
    Build the FastAPI application around one service instance.

    When no service is given, one is built from ``settings``.
    """
    if service is None:
        service = InspectorService.from_settings(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
DuckDB Inspector: browse, query, mutate and export one DuckDB database file.

- Table listing, schema and aggregated table info
- Ad-hoc SQL with a bounded query history
- Row insert/update/delete with parameterized `?where=` filters
- JSON and CSV export
- Realtime channel on `/ws` (`subscribe_tables`, `execute_query`)

All errors are returned as `{"error": "...", "success": false}`.
        """,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.service = service

    # Inside CORSMiddleware, which keeps answering full preflight requests
    app.add_middleware(BaseHTTPMiddleware, dispatch=cors_headers_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )
    app.add_middleware(MetricsMiddleware)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        """Log all requests with timing and request ID."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start_time = time.perf_counter()
        logger.debug("request_started", method=request.method, path=request.url.path)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(InspectorError, inspector_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(backend.router)
    app.include_router(tables.router)
    app.include_router(query.router)
    app.include_router(database.router)
    app.include_router(metrics.router)
    if settings.enable_websocket:
        app.include_router(realtime.router)

    return app


# Setup logging before creating app
setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "duckdb_inspector.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

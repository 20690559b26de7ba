import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from .settings import Settings, settings, require_database_url, configure_logging
from .models import first_error_message
from .routes import router as api_router
from .storage import init_storage, reset_storage
from .cep import init_cep_client, close_cep_client
from .frontend import setup_dev_proxy, close_dev_proxy, serve_static
from . import db


logger = logging.getLogger(__name__)

SERVER_VERSION = "1.0.0"

# Longest request log line; longer lines are cut and end with an ellipsis
MAX_LOG_LINE = 80


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    app_settings: Settings = app.state.settings
    configure_logging(app_settings.log_level)

    # Startup: fail fast without a database
    database_url = require_database_url()
    pool = await db.create_pool(
        database_url,
        min_size=app_settings.db_pool_min_size,
        max_size=app_settings.db_pool_max_size,
    )
    logger.info("[startup] Database pool initialized successfully")

    try:
        if app_settings.create_tables:
            await db.create_tables(pool)

        init_storage(pool)
        init_cep_client(app_settings.cep_service_url, timeout=app_settings.cep_timeout)
        logger.info(f"[startup] Serving in {app_settings.env} mode on port {app_settings.port}")

        yield
    finally:
        await close_cep_client()
        await close_dev_proxy(app)
        reset_storage()
        await db.close_pool(pool)
        logger.info("[shutdown] Database pool closed")


def error_status(exc: Exception) -> int:
    """Status the backstop handler answers with: exc.status, exc.status_code or 500."""
    status_code = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    return status_code if isinstance(status_code, int) else 500


def truncate_log_line(line: str, limit: int = MAX_LOG_LINE) -> str:
    if len(line) > limit:
        return line[: limit - 1] + "…"
    return line


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs one line per API request: method, path, status, duration and the
    JSON body that was sent back.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        path = request.url.path

        if not path.startswith("/api"):
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = int((time.time() - start_time) * 1000)
            log_line = f"{request.method} {path} {error_status(exc)} in {duration_ms}ms"
            logger.info(truncate_log_line(log_line))
            raise

        captured_json: Optional[str] = None
        if response.headers.get("content-type", "").startswith("application/json"):
            body = b"".join([chunk async for chunk in response.body_iterator])
            captured_json = body.decode("utf-8", errors="replace")
            response = Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
            )

        duration_ms = int((time.time() - start_time) * 1000)
        log_line = f"{request.method} {path} {response.status_code} in {duration_ms}ms"
        if captured_json:
            log_line += f" :: {captured_json}"
        logger.info(truncate_log_line(log_line))
        return response


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": first_error_message(exc.errors())},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Last-resort handler. Starlette re-raises the exception after this
    response is sent, so the server log still carries the traceback.
    """
    message = str(exc) or "Internal Server Error"
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {message}")
    return JSONResponse(status_code=error_status(exc), content={"message": message})


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application: API routes first, then the client catch-all."""
    app_settings = app_settings or settings

    app = FastAPI(
        title="Checkout Server",
        version=SERVER_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router)

    if app_settings.env == "development":
        setup_dev_proxy(app, app_settings.dev_server_url)
    else:
        serve_static(app, app_settings.static_dir)

    return app


app = create_app()


def cli():
    import uvicorn
    uvicorn.run(
        "checkout.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.env == "development",
    )

if __name__ == "__main__":
    cli()

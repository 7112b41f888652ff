from __future__ import annotations

import logging
import sys
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from expirysignal.db import make_engine
from expirysignal.db_expiry import ExpiryStore
from expirysignal.errors import InputValidationError, SettingsError, StorageError
from expirysignal.routers.expiry import router as expiry_router
from expirysignal.routers.health import router as health_router
from expirysignal.settings import Settings, load_settings

logger = logging.getLogger("expirysignal")


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(InputValidationError)
    async def _invalid_input(request: Request, exc: InputValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.code, "details": exc.details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        # Unknown path and unsupported method on a known path both read as "no such route".
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"error": "NOT_FOUND", "path": request.url.path},
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        logger.exception("storage_error %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "INTERNAL_ERROR"},
        )

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("unhandled_error %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "INTERNAL_ERROR"},
        )


def create_app(settings: Optional[Settings] = None, store: Optional[ExpiryStore] = None) -> FastAPI:
    """Application factory.

    Args:
        settings: Process settings; loaded from the environment when omitted.
        store: Storage handle; built from settings.database_url when omitted.
    """
    if settings is None:
        settings = load_settings()
    if store is None:
        store = ExpiryStore(make_engine(settings.database_url))

    app = FastAPI(title="ExpirySignal", version="1.0.0")
    app.state.settings = settings
    app.state.store = store

    # Optional single-origin allowlist; permissive when unset (local dev).
    if settings.cors_origin:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[settings.cors_origin],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health_router)
    app.include_router(expiry_router)
    _install_error_handlers(app)
    return app


def run() -> None:
    """Console entrypoint: load settings, configure logging, serve with uvicorn."""
    import uvicorn

    try:
        settings = load_settings()
    except SettingsError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.error("invalid configuration: %s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info("backend listening at http://localhost:%d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()

"""Liveness and readiness probes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from expirysignal.db_expiry import ExpiryStore
from expirysignal.deps import get_settings, get_store
from expirysignal.errors import StorageError
from expirysignal.settings import Settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "expirysignal"

router = APIRouter(tags=["health"])


@router.get("/health")
def health(settings: Settings = Depends(get_settings)):
    """Liveness only: does not touch storage."""
    return {"ok": True, "service": SERVICE_NAME, "time_source": settings.time_source}


@router.get("/health/ready")
async def ready(store: ExpiryStore = Depends(get_store)):
    try:
        await run_in_threadpool(store.ping)
    except StorageError:
        logger.warning("readiness probe: storage unavailable", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False, "service": SERVICE_NAME, "error": "STORAGE_UNAVAILABLE"},
        )
    return {"ok": True, "service": SERVICE_NAME}

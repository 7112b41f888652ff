"""Expiry signal router: write (upsert) and read endpoints plus legacy aliases.

Canonical routes:
    POST /api/expiry
    GET  /api/expiry
Backwards-compatible aliases used by older clients:
    POST /api/expiry/write
    GET  /api/expiry/signal
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from expirysignal.deps import get_signal_service
from expirysignal.errors import InputValidationError
from expirysignal.schemas.expiry import ReadSignalResponse, WriteSignalResponse
from expirysignal.services.expiry_signal import INVALID_INPUT, ExpirySignalService

router = APIRouter(prefix="/api", tags=["expiry"])


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise InputValidationError(
            INVALID_INPUT,
            {"formErrors": ["Request body must be valid JSON"], "fieldErrors": {}},
        ) from exc


@router.post("/expiry", response_model=WriteSignalResponse)
@router.post("/expiry/write", response_model=WriteSignalResponse, include_in_schema=False)
async def write_expiry_endpoint(
    request: Request,
    service: ExpirySignalService = Depends(get_signal_service),
):
    """Upsert the expiry record for (subject, scope). Operator-owned write."""
    body = await _json_body(request)
    return await run_in_threadpool(service.write, body)


@router.get("/expiry", response_model=ReadSignalResponse)
@router.get("/expiry/signal", response_model=ReadSignalResponse, include_in_schema=False)
def read_expiry_endpoint(
    request: Request,
    service: ExpirySignalService = Depends(get_signal_service),
):
    """Return the expiry signal, computed at read time."""
    return service.read(request.query_params)

"""Pydantic schemas for the expiry signal endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from expirysignal.utils.timestamps import parse_instant

COMPONENT = "ExpirySignal"
COMPONENT_ID = "EXP-01"
COMPONENT_VERSION = "1.0.0"


def _instant(v: Any) -> Any:
    if isinstance(v, str):
        return parse_instant(v)
    raise ValueError("must be an ISO-8601 date-time string")


class ExpiryWriteInput(BaseModel):
    """Normalized write body. Field aliases are the public (wire) names."""

    model_config = ConfigDict(strict=True, populate_by_name=True)

    subject: str = Field(..., min_length=1)
    scope: Optional[str] = Field(None, min_length=1)
    expires_at: datetime = Field(..., alias="expiresAt")
    cause_code: Optional[str] = Field(None, min_length=1, max_length=120)
    renewable: Optional[bool] = None
    note: Optional[str] = Field(None, max_length=500)

    @field_validator("expires_at", mode="before")
    @classmethod
    def parse_expires_at(cls, v: Any) -> Any:
        return _instant(v)


class ExpiryReadQuery(BaseModel):
    model_config = ConfigDict(strict=True)

    subject: str = Field(..., min_length=1)
    scope: Optional[str] = Field(None, min_length=1)
    now: Optional[datetime] = None

    @field_validator("now", mode="before")
    @classmethod
    def parse_now(cls, v: Any) -> Any:
        if v is None:
            return v
        return _instant(v)


class SignalPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    component: str = COMPONENT
    component_id: str = COMPONENT_ID
    version: str = COMPONENT_VERSION
    subject: str
    scope: Optional[str] = None
    now: str
    expires_at: Optional[str] = Field(None, alias="expiresAt")
    cause_code: Optional[str] = None
    renewable: Optional[bool] = None
    signal: str = Field(..., description="'stored', 'no_record', 'expired' or 'not_expired'")
    warnings: List[str]


class ReadSignalResponse(SignalPayload):
    expired: Optional[bool] = None


class WriteSignalResponse(BaseModel):
    status: str = Field("applied", description="'applied'")
    signal: SignalPayload


def flatten_errors(exc: ValidationError) -> Dict[str, Any]:
    """Collapse pydantic errors into {"formErrors": [...], "fieldErrors": {field: [...]}}."""
    form_errors: List[str] = []
    field_errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        msg = err.get("msg", "Invalid value")
        if loc:
            field_errors.setdefault(str(loc[0]), []).append(msg)
        else:
            form_errors.append(msg)
    return {"formErrors": form_errors, "fieldErrors": field_errors}

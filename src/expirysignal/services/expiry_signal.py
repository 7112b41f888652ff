"""Expiry signal service: normalize, validate, store/lookup, and shape the signal.

The signal is evidence only. Nothing here decides access: a record that is not
expired does not authorize anything, and a missing record does not permit
anything. `renewable` and `cause_code` are carried through untouched and never
change the outcome.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from expirysignal.db_expiry import ExpiryRecord, ExpiryStore
from expirysignal.errors import InputValidationError
from expirysignal.schemas.expiry import (
    ExpiryReadQuery,
    ExpiryWriteInput,
    ReadSignalResponse,
    SignalPayload,
    WriteSignalResponse,
    flatten_errors,
)
from expirysignal.utils.timestamps import format_instant, utcnow

logger = logging.getLogger(__name__)

SIGNAL_STORED = "stored"
SIGNAL_NO_RECORD = "no_record"
SIGNAL_EXPIRED = "expired"
SIGNAL_NOT_EXPIRED = "not_expired"

WARNING_SIGNAL_ONLY = (
    "Signal-only: ExpirySignal emits temporal validity. "
    "Your application interprets the signal and enforces outcomes."
)
WARNING_NOT_AUTHORIZATION = "Not expired is not authorization. Treat this signal as evidence only."
WARNING_ABSENCE_NOT_PERMISSION = (
    "Absence of record is not permission. "
    "Default to fail-closed unless you explicitly choose otherwise."
)

INVALID_INPUT = "INVALID_INPUT"
INVALID_QUERY = "INVALID_QUERY"


def _first_present(raw: Mapping[str, Any], canonical: str, alias: str) -> Any:
    value = raw.get(canonical)
    if value is None:
        value = raw.get(alias)
    return value


def normalize_write_body(raw: Any) -> Dict[str, Any]:
    """Map a raw write body onto canonical field names.

    Legacy spellings are accepted: `expires_at` for `expiresAt` and `causeCode`
    for `cause_code`. The canonical name wins whenever it carries a value.
    """
    if not isinstance(raw, Mapping):
        raw = {}
    return {
        "subject": raw.get("subject"),
        "scope": raw.get("scope"),
        "expiresAt": _first_present(raw, "expiresAt", "expires_at"),
        "cause_code": _first_present(raw, "cause_code", "causeCode"),
        "renewable": raw.get("renewable"),
        "note": raw.get("note"),
    }


def _present(values: Mapping[str, Any]) -> Dict[str, Any]:
    # null is treated as "not supplied" so required fields report as missing
    return {k: v for k, v in values.items() if v is not None}


def validate_write(normalized: Mapping[str, Any]) -> ExpiryWriteInput:
    try:
        return ExpiryWriteInput.model_validate(_present(normalized))
    except ValidationError as exc:
        raise InputValidationError(INVALID_INPUT, flatten_errors(exc)) from exc


def validate_read(query: Mapping[str, Any]) -> ExpiryReadQuery:
    try:
        return ExpiryReadQuery.model_validate(
            _present({"subject": query.get("subject"), "scope": query.get("scope"), "now": query.get("now")})
        )
    except ValidationError as exc:
        raise InputValidationError(INVALID_QUERY, flatten_errors(exc)) from exc


def is_expired(reference: datetime, expires_at: datetime) -> bool:
    """Inclusive: a reference instant equal to expires_at counts as expired."""
    return reference >= expires_at


class ExpirySignalService:
    def __init__(self, store: ExpiryStore, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.store = store
        self.clock = clock or utcnow

    def write(self, raw: Any) -> Dict[str, Any]:
        """Upsert the record described by `raw` and return the "stored" signal.

        Raises:
            InputValidationError: INVALID_INPUT; the store is not touched.
            StorageError: propagated unchanged from the store.
        """
        data = validate_write(normalize_write_body(raw))

        record = self.store.upsert(
            subject=data.subject,
            scope=data.scope,
            expires_at=data.expires_at,
            cause_code=data.cause_code,
            renewable=data.renewable,
            note=data.note,
        )
        logger.info(
            "expiry stored subject=%r scope=%r expires_at=%s",
            record.subject,
            record.scope,
            format_instant(record.expires_at),
        )

        payload = SignalPayload(
            subject=record.subject,
            scope=record.scope,
            now=format_instant(self.clock()),
            expires_at=format_instant(record.expires_at),
            cause_code=record.cause_code,
            renewable=record.renewable,
            signal=SIGNAL_STORED,
            warnings=[WARNING_SIGNAL_ONLY, WARNING_NOT_AUTHORIZATION],
        )
        return WriteSignalResponse(signal=payload).model_dump(by_alias=True)

    def read(self, query: Mapping[str, Any]) -> Dict[str, Any]:
        """Compute the signal for (subject, scope) at `now` (or the clock).

        Raises:
            InputValidationError: INVALID_QUERY; the store is not touched.
            StorageError: propagated unchanged from the store.
        """
        q = validate_read(query)
        reference = q.now if q.now is not None else self.clock()

        record = self.store.lookup(q.subject, q.scope)
        if record is None:
            logger.debug("expiry signal subject=%r scope=%r signal=%s", q.subject, q.scope, SIGNAL_NO_RECORD)
            return ReadSignalResponse(
                subject=q.subject,
                scope=q.scope,
                now=format_instant(reference),
                signal=SIGNAL_NO_RECORD,
                expired=None,
                warnings=[WARNING_SIGNAL_ONLY, WARNING_ABSENCE_NOT_PERMISSION],
            ).model_dump(by_alias=True)

        return self._signal_for(record, reference)

    def _signal_for(self, record: ExpiryRecord, reference: datetime) -> Dict[str, Any]:
        expired = is_expired(reference, record.expires_at)
        signal = SIGNAL_EXPIRED if expired else SIGNAL_NOT_EXPIRED
        logger.debug("expiry signal subject=%r scope=%r signal=%s", record.subject, record.scope, signal)
        return ReadSignalResponse(
            subject=record.subject,
            scope=record.scope,
            now=format_instant(reference),
            expires_at=format_instant(record.expires_at),
            cause_code=record.cause_code,
            renewable=record.renewable,
            signal=signal,
            expired=expired,
            warnings=[WARNING_SIGNAL_ONLY, WARNING_NOT_AUTHORIZATION],
        ).model_dump(by_alias=True)

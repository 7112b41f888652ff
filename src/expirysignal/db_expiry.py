"""Storage for expiry records keyed by (subject, scope)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import func

from expirysignal.db import Base
from expirysignal.errors import StorageError
from expirysignal.models import NO_SCOPE, ExpiryRecordRow
from expirysignal.utils.timestamps import as_utc, truncate_to_millis

logger = logging.getLogger(__name__)

_table = ExpiryRecordRow.__table__

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class ExpiryRecord:
    subject: str
    scope: Optional[str]
    expires_at: datetime
    cause_code: Optional[str] = None
    renewable: Optional[bool] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _to_record(row: Mapping[str, Any]) -> ExpiryRecord:
    scope = row["scope"]
    return ExpiryRecord(
        subject=row["subject"],
        scope=None if scope == NO_SCOPE else scope,
        expires_at=as_utc(row["expires_at"]),
        cause_code=row["cause_code"],
        renewable=row["renewable"],
        note=row["note"],
        created_at=as_utc(row["created_at"]) if row["created_at"] is not None else None,
        updated_at=as_utc(row["updated_at"]) if row["updated_at"] is not None else None,
    )


class ExpiryStore:
    """Upsert/lookup of expiry records over an injected SQLAlchemy engine.

    Concurrent upserts for one identity are serialized by the database's
    INSERT ... ON CONFLICT; no locking happens here and nothing is retried.
    """

    def __init__(self, engine: Engine) -> None:
        dialect = engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise ValueError(f"unsupported database dialect for upsert: {dialect}")
        self.engine = engine
        self._insert = _UPSERT_DIALECTS[dialect]

    def create_schema(self) -> None:
        """Create tables from model metadata (tests/local dev; prod uses alembic)."""
        Base.metadata.create_all(self.engine, tables=[_table])

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise StorageError("storage backend unavailable") from exc

    def upsert(
        self,
        subject: str,
        scope: Optional[str],
        expires_at: datetime,
        cause_code: Optional[str] = None,
        renewable: Optional[bool] = None,
        note: Optional[str] = None,
    ) -> ExpiryRecord:
        """Insert or replace the record for (subject, scope).

        One INSERT ... ON CONFLICT ... RETURNING statement. Mutable fields always
        take this call's values; omitted optionals are cleared, not kept from the
        previous write. expires_at is kept to the millisecond.

        Raises:
            ValueError: empty subject or naive expires_at.
            StorageError: the backend failed; the transaction is rolled back.
        """
        if not subject:
            raise ValueError("subject must be non-empty")
        if expires_at.tzinfo is None:
            raise ValueError("expires_at must be timezone-aware")

        scope_key = NO_SCOPE if scope is None else scope
        values = {
            "expires_at": truncate_to_millis(as_utc(expires_at)),
            "cause_code": cause_code,
            "renewable": renewable,
            "note": note,
        }
        stmt = self._insert(_table).values(subject=subject, scope=scope_key, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_table.c.subject, _table.c.scope],
            set_={**values, "updated_at": func.now()},
        ).returning(*_table.c)

        try:
            with self.engine.begin() as conn:
                row = conn.execute(stmt).mappings().one()
        except SQLAlchemyError as exc:
            logger.error("expiry upsert failed subject=%r scope=%r: %s", subject, scope, exc)
            raise StorageError("failed to upsert expiry record") from exc

        return _to_record(row)

    def lookup(self, subject: str, scope: Optional[str]) -> Optional[ExpiryRecord]:
        """Return the record for (subject, scope), or None when none exists."""
        scope_key = NO_SCOPE if scope is None else scope
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(_table).where(
                        _table.c.subject == subject,
                        _table.c.scope == scope_key,
                    )
                ).mappings().first()
        except SQLAlchemyError as exc:
            logger.error("expiry lookup failed subject=%r scope=%r: %s", subject, scope, exc)
            raise StorageError("failed to read expiry record") from exc

        if row is None:
            return None
        return _to_record(row)

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event, func, select

from expirysignal.db_expiry import ExpiryStore
from expirysignal.errors import StorageError
from expirysignal.models import ExpiryRecordRow


T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _row_count(engine) -> int:
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(ExpiryRecordRow.__table__)).scalar_one()


def test_lookup_missing_identity_returns_none(store):
    assert store.lookup("ghost", None) is None


def test_upsert_creates_then_replaces_in_place(store, engine):
    first = store.upsert("user-42", None, T0, cause_code="trial_end", renewable=True, note="first")
    assert first.subject == "user-42"
    assert first.scope is None
    assert first.expires_at == T0
    assert first.cause_code == "trial_end"
    assert first.renewable is True

    second = store.upsert("user-42", None, T0 + timedelta(days=30))
    assert second.expires_at == T0 + timedelta(days=30)
    # Replace, not merge: omitted optionals are cleared.
    assert second.cause_code is None
    assert second.renewable is None
    assert second.note is None

    assert _row_count(engine) == 1
    assert store.lookup("user-42", None) == second


def test_scope_is_part_of_identity(store, engine):
    store.upsert("user-42", None, T0)
    store.upsert("user-42", "scope-A", T0 + timedelta(days=1))
    store.upsert("user-42", "scope-A", T0 + timedelta(days=2))

    assert _row_count(engine) == 2
    assert store.lookup("user-42", None).expires_at == T0
    scoped = store.lookup("user-42", "scope-A")
    assert scoped.scope == "scope-A"
    assert scoped.expires_at == T0 + timedelta(days=2)
    assert store.lookup("user-42", "scope-B") is None


def test_upsert_normalizes_offsets_to_utc(store):
    local = datetime(2025, 1, 1, 3, 0, tzinfo=timezone(timedelta(hours=3)))
    record = store.upsert("user-1", None, local)
    assert record.expires_at == T0
    assert record.expires_at.tzinfo is not None


def test_upsert_rejects_empty_subject_and_naive_timestamp(store, engine):
    with pytest.raises(ValueError):
        store.upsert("", None, T0)
    with pytest.raises(ValueError):
        store.upsert("user-1", None, datetime(2025, 1, 1))
    assert _row_count(engine) == 0


def test_backend_failure_raises_storage_error(engine):
    # Schema never created: every statement fails at the backend.
    store = ExpiryStore(engine)
    with pytest.raises(StorageError):
        store.upsert("user-1", None, T0)
    with pytest.raises(StorageError):
        store.lookup("user-1", None)


def test_ping(store):
    store.ping()


def test_upsert_is_a_single_statement(store, engine):
    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine, "before_cursor_execute", record)
    try:
        store.upsert("user-1", None, T0)
        record_ = store.upsert("user-1", None, T0 + timedelta(days=1), note="again")
    finally:
        event.remove(engine, "before_cursor_execute", record)

    touching_table = [s for s in statements if "expiry_records" in s]
    assert len(touching_table) == 2
    assert all("ON CONFLICT" in s and "RETURNING" in s for s in touching_table)
    assert record_.expires_at == T0 + timedelta(days=1)
    assert record_.note == "again"
    assert record_.created_at is not None


def test_upsert_keeps_millisecond_precision(store):
    record = store.upsert("user-1", None, T0 + timedelta(microseconds=1999))
    assert record.expires_at == T0 + timedelta(milliseconds=1)
    assert store.lookup("user-1", None).expires_at == T0 + timedelta(milliseconds=1)

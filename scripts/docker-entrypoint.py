#!/usr/bin/env python3
"""Container entrypoint for the ExpirySignal API.

Waits for PostgreSQL, applies alembic migrations while holding an advisory lock
(so several replicas starting together migrate once), then execs the command.

Usage:
    python scripts/docker-entrypoint.py expirysignal-server
"""

import os
import subprocess
import sys
import time
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from expirysignal.db import make_engine
from expirysignal.errors import SettingsError
from expirysignal.settings import load_settings

MIGRATION_LOCK_ID = 4004_0001
LOCK_TIMEOUT_S = 120
REPO_ROOT = Path(__file__).resolve().parent.parent


def wait_for_postgres(engine, max_attempts=30, delay=1):
    """Return True once `SELECT 1` succeeds, False after max_attempts failures."""
    print("Waiting for PostgreSQL...")
    for attempt in range(1, max_attempts + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            print(f"PostgreSQL is ready (attempt {attempt}/{max_attempts})")
            return True
        except SQLAlchemyError as e:
            if attempt == max_attempts:
                print(f"ERROR: PostgreSQL not ready after {max_attempts} attempts: {e}")
                return False
            print(f"  Attempt {attempt}/{max_attempts}: not ready yet, waiting {delay}s...")
            time.sleep(delay)
    return False


def run_migrations(engine):
    """Run `alembic upgrade head` under pg_try_advisory_lock; True on success."""
    if not wait_for_postgres(engine):
        return False

    with engine.connect() as conn:
        start = time.time()
        acquired = False
        while time.time() - start < LOCK_TIMEOUT_S:
            if conn.execute(text("SELECT pg_try_advisory_lock(:id)"), {"id": MIGRATION_LOCK_ID}).scalar_one():
                acquired = True
                break
            time.sleep(2)
        if not acquired:
            print(f"ERROR: Failed to acquire migration lock within {LOCK_TIMEOUT_S} seconds")
            return False

        try:
            print("Running alembic upgrade head...")
            result = subprocess.run(
                ["alembic", "upgrade", "head"],
                cwd=REPO_ROOT,
                check=False,
                capture_output=True,
                text=True,
            )
            if result.stdout:
                print(result.stdout)
            if result.returncode != 0:
                print(f"ERROR: Migration failed with exit code {result.returncode}")
                if result.stderr:
                    print(result.stderr)
                return False
            print("Migration success")
            return True
        finally:
            conn.execute(text("SELECT pg_advisory_unlock(:id)"), {"id": MIGRATION_LOCK_ID})
            print("Released migration lock")


def main():
    print("=== Docker Entrypoint: Starting ExpirySignal ===")
    try:
        settings = load_settings()
    except SettingsError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if not run_migrations(make_engine(settings.database_url)):
        print("ERROR: Migrations failed. Exiting without starting the server.")
        sys.exit(1)

    if len(sys.argv) < 2:
        print("ERROR: No command provided, exiting")
        sys.exit(1)
    print(f"=== Executing: {' '.join(sys.argv[1:])} ===")
    os.execvp(sys.argv[1], sys.argv[1:])


if __name__ == "__main__":
    main()

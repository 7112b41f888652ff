"""Process configuration loaded once from the environment (and `.env`)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from expirysignal.db import normalize_database_url
from expirysignal.errors import SettingsError

DEFAULT_PORT = 4004
TIME_SOURCES = ("system",)
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    database_url: str
    port: int = DEFAULT_PORT
    cors_origin: Optional[str] = None
    time_source: str = "system"
    log_level: str = "INFO"


def _parse_port(raw: Optional[str]) -> int:
    if raw is None or raw.strip() == "":
        return DEFAULT_PORT
    try:
        port = int(raw.strip())
    except ValueError as exc:
        raise SettingsError(f"PORT must be an integer, got {raw!r}") from exc
    if port <= 0:
        raise SettingsError(f"PORT must be positive, got {port}")
    return port


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    When `environ` is omitted, `.env` from the current working directory is
    loaded first (existing variables are not overridden) and `os.environ` is read.

    Raises:
        SettingsError: DATABASE_URL is missing, or PORT, TIME_SOURCE or LOG_LEVEL is invalid.
    """
    if environ is None:
        load_dotenv(os.path.join(os.getcwd(), ".env"))
        environ = os.environ

    database_url = (environ.get("DATABASE_URL") or "").strip()
    if not database_url:
        raise SettingsError("DATABASE_URL is required")

    time_source = (environ.get("TIME_SOURCE") or "system").strip()
    if time_source not in TIME_SOURCES:
        raise SettingsError(f"TIME_SOURCE must be one of {TIME_SOURCES}, got {time_source!r}")

    cors_origin = (environ.get("CORS_ORIGIN") or "").strip() or None

    log_level = (environ.get("LOG_LEVEL") or "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise SettingsError(f"LOG_LEVEL must be one of {LOG_LEVELS}, got {log_level!r}")

    return Settings(
        database_url=normalize_database_url(database_url),
        port=_parse_port(environ.get("PORT")),
        cors_origin=cors_origin,
        time_source=time_source,
        log_level=log_level,
    )

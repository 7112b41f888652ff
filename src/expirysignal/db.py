"""SQLAlchemy engine factory and declarative base."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Force the psycopg2 driver for PostgreSQL URLs; other URLs pass through."""
    if "postgresql+psycopg://" in url:
        return url.replace("postgresql+psycopg://", "postgresql+psycopg2://", 1)
    if url.startswith("psycopg://"):
        return url.replace("psycopg://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


def make_engine(database_url: str, **kwargs) -> Engine:
    return create_engine(normalize_database_url(database_url), pool_pre_ping=True, **kwargs)

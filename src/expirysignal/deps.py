"""Dependencies for FastAPI endpoints."""

from fastapi import Request

from expirysignal.db_expiry import ExpiryStore
from expirysignal.services.expiry_signal import ExpirySignalService
from expirysignal.settings import Settings


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> ExpiryStore:
    return request.app.state.store


def get_signal_service(request: Request) -> ExpirySignalService:
    """Service bound to the application's store (override in tests)."""
    return ExpirySignalService(get_store(request))

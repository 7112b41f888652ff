"""Exception types shared across the service."""

from __future__ import annotations

from typing import Any, Dict


class ExpirySignalError(Exception):
    """Base class for errors raised by this package."""


class SettingsError(ExpirySignalError):
    """Raised when process configuration is missing or invalid (fatal at startup)."""


class StorageError(ExpirySignalError):
    """Raised when the storage backend fails (unavailable, timeout, constraint violation)."""


class InputValidationError(ExpirySignalError):
    """Raised when a request body or query fails validation.

    `code` is the public error code ("INVALID_INPUT" / "INVALID_QUERY"),
    `details` is a {"formErrors": [...], "fieldErrors": {...}} breakdown.
    """

    def __init__(self, code: str, details: Dict[str, Any]) -> None:
        super().__init__(code)
        self.code = code
        self.details = details

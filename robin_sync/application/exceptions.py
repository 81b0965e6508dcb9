"""Exception hierarchy for the credential and sync cycle."""

from __future__ import annotations

from typing import Optional


class SyncError(Exception):
    """Base exception for failures inside a sync cycle."""

    kind = "SyncError"


class StorageError(SyncError):
    """Raised when a document cannot be read or written for a reason other than absence."""

    kind = "StorageError"

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ConfigurationError(SyncError):
    """Raised when a required setting or credential override is missing."""

    kind = "ConfigurationError"

    def __init__(self, message: str, *, missing: Optional[str] = None):
        super().__init__(message)
        self.missing = missing


class ExchangeError(SyncError):
    """Raised when trading a refresh token for a new token pair fails."""

    kind = "ExchangeError"

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class PipelineError(SyncError):
    """Raised when fetching, decoding or uploading the account snapshot fails."""

    kind = "PipelineError"

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        url: Optional[str] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.url = url
        self.response_body = response_body


__all__ = [
    "SyncError",
    "StorageError",
    "ConfigurationError",
    "ExchangeError",
    "PipelineError",
]

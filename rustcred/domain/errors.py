"""
Domain Layer — Errors
---------------------
Every failure the core can report. Infrastructure translates transport
problems (httpx exceptions, HTTP statuses) into these; the application
layer decides which of them end the run.
"""

from __future__ import annotations
from enum import Enum


class ErrorKind(str, Enum):
    NETWORK      = "network"
    DECODE       = "decode"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND    = "not_found"


class RustCredError(Exception):
    """Base class for every error that aborts or degrades a run."""


class RemoteError(RustCredError):
    """
    A remote API operation failed.

    `kind` tells callers how to react: only RATE_LIMITED is worth a
    retry, only NOT_FOUND may be skipped, the rest end the run.
    """

    def __init__(self, kind: ErrorKind, detail: str, retry_after: float | None = None) -> None:
        super().__init__(f"{kind.value}: {detail}")
        self.kind        = kind
        self.detail      = detail
        self.retry_after = retry_after

    @property
    def is_retryable(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMITED


class ConfigMissingError(RustCredError):
    """A required configuration resource does not exist."""

    def __init__(self, resource: str, detail: str = "") -> None:
        message = f"required configuration '{resource}' is missing"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.resource = resource

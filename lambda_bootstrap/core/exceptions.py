"""
Custom exception classes.

Represent errors raised while loading the handler or talking to the Runtime API.
"""

from lambda_bootstrap.models.invocation import ErrorKind


class BootstrapError(Exception):
    """Base exception class for the runtime bootstrap."""

    pass


class HandlerLoadError(BootstrapError):
    """Raised when the handler cannot be resolved at process start."""

    def __init__(self, kind: ErrorKind, specifier: str, detail: str):
        self.kind = kind
        self.specifier = specifier
        self.detail = detail
        super().__init__(f"Error loading handler '{specifier}': {detail}")


class RuntimeApiError(BootstrapError):
    """Raised when the Runtime API answers with an unexpected status."""

    def __init__(self, status_code: int, path: str, detail: str = ""):
        self.status_code = status_code
        self.path = path
        self.detail = detail
        super().__init__(f"Runtime API error ({status_code}) on {path}: {detail}")


class ResponseSerializationError(BootstrapError):
    """Raised when a handler result cannot be encoded as JSON."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Unable to serialize handler response: {cause}")

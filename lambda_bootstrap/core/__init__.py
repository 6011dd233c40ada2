"""
Core logic package.

Provides the completion latch, the asynchronous error capture and shared helpers.
"""

from .capture import ErrorCapture
from .completion import Completion
from .exceptions import (
    BootstrapError,
    HandlerLoadError,
    ResponseSerializationError,
    RuntimeApiError,
)

__all__ = [
    "BootstrapError",
    "Completion",
    "ErrorCapture",
    "HandlerLoadError",
    "ResponseSerializationError",
    "RuntimeApiError",
]

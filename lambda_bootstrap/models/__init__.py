"""
Data model definitions package.

Aggregates the invocation models for use in other modules.
"""

from .context import LambdaContext
from .invocation import (
    ErrorKind,
    Failure,
    HandlerSpec,
    InvocationOutcome,
    InvocationRequest,
    Success,
)

__all__ = [
    "ErrorKind",
    "Failure",
    "HandlerSpec",
    "InvocationOutcome",
    "InvocationRequest",
    "LambdaContext",
    "Success",
]

"""
RequestContext management.
ContextVars holding the identifiers of the invocation currently in flight,
read by the JSON log formatter.
"""

from contextvars import ContextVar
from typing import Optional

from .trace import TraceId


# Context variable for Trace ID (header format).
_trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
# Context variable for the invocation Request ID.
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_trace_id() -> Optional[str]:
    """Get the current Trace ID."""
    return _trace_id_var.get()


def get_request_id() -> Optional[str]:
    """Get the current Request ID."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> None:
    _request_id_var.set(request_id)


def set_trace_id(trace_id_str: Optional[str]) -> Optional[str]:
    """
    Set the Trace ID.

    Args:
        trace_id_str: Lambda-Runtime-Trace-Id header string, or None

    Returns:
        The normalized Trace ID string that was set
    """
    if not trace_id_str:
        _trace_id_var.set(None)
        return None
    trace = str(TraceId.parse(trace_id_str))
    _trace_id_var.set(trace)
    return trace


def clear_request_context() -> None:
    """Clear both identifiers."""
    _trace_id_var.set(None)
    _request_id_var.set(None)

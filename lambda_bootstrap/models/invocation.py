"""
Invocation models.

Data flowing between the Runtime API client, the handler loader and the executor.
"""

import traceback
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Closed set of failure classifications reported to the Runtime API."""

    HANDLER_ERROR = "HandlerError"
    HANDLER_UNHANDLED_ERROR = "HandlerUnhandledError"
    ERROR_LOADING_HANDLER = "ErrorLoadingHandler"
    WRONG_HANDLER_TYPE = "WrongHandlerType"

    @property
    def wire_name(self) -> str:
        return WIRE_NAMES[self]


WIRE_NAMES = {
    ErrorKind.HANDLER_ERROR: "Handler.Error",
    ErrorKind.HANDLER_UNHANDLED_ERROR: "Handler.UnhandledError",
    ErrorKind.ERROR_LOADING_HANDLER: "Runtime.ErrorLoadingHandler",
    ErrorKind.WRONG_HANDLER_TYPE: "Runtime.WrongHandlerType",
}


class HandlerSpec(BaseModel):
    """
    Parsed handler specifier (`<module_path>.<member_name>`).
    """

    model_config = ConfigDict(frozen=True)

    specifier: str
    module_path: str
    member_name: str
    task_root: str

    @property
    def module_name(self) -> str:
        """Dotted import name; nested directories become packages."""
        return self.module_path.strip("/").replace("/", ".")


class InvocationRequest(BaseModel):
    """
    One event fetched from /runtime/invocation/next.
    """

    request_id: str
    deadline_ms: int
    invoked_function_arn: str = ""
    trace_id: Optional[str] = None
    client_context: Optional[Any] = None
    cognito_identity: Optional[Any] = None
    payload: Any = None


class Success(BaseModel):
    status: Literal["success"] = "success"
    value: Any = None


class Failure(BaseModel):
    status: Literal["failure"] = "failure"
    kind: ErrorKind
    message: str
    stack_lines: List[str] = Field(default_factory=list)

    @classmethod
    def from_exception(
        cls, kind: ErrorKind, exc: BaseException, message: Optional[str] = None
    ) -> "Failure":
        return cls(
            kind=kind,
            message=str(exc) if message is None else message,
            stack_lines=format_stack_lines(exc),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Body of the /error and /init/error endpoints."""
        return {
            "errorMessage": self.message,
            "errorType": self.kind.wire_name,
            "stackTrace": self.stack_lines,
        }


InvocationOutcome = Union[Success, Failure]


def format_stack_lines(exc: BaseException) -> List[str]:
    """
    Split an exception's trace into lines, summary first.

    The first line is always "<ExceptionType>: <message>".
    """
    lines = [f"{type(exc).__name__}: {exc}"]
    for chunk in traceback.format_tb(exc.__traceback__):
        lines.extend(line.rstrip() for line in chunk.splitlines() if line.strip())
    return lines

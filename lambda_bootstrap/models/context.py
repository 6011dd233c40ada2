"""
Handler context.

The second argument passed to user code, built from the poll response and the
function metadata of the execution environment.
"""

import time
from typing import Any, Optional

from lambda_bootstrap.config import RuntimeConfig

from .invocation import InvocationRequest


class LambdaContext:
    """
    Per-invocation context object handed to the handler.
    """

    def __init__(
        self,
        aws_request_id: str,
        deadline_ms: int,
        invoked_function_arn: str,
        trace_id: Optional[str] = None,
        client_context: Optional[Any] = None,
        identity: Optional[Any] = None,
        function_name: str = "",
        function_version: str = "$LATEST",
        memory_limit_in_mb: Optional[int] = None,
        log_group_name: str = "",
        log_stream_name: str = "",
    ):
        self.aws_request_id = aws_request_id
        self.deadline_ms = deadline_ms
        self.invoked_function_arn = invoked_function_arn
        self.trace_id = trace_id
        self.client_context = client_context
        self.identity = identity
        self.function_name = function_name
        self.function_version = function_version
        self.memory_limit_in_mb = memory_limit_in_mb
        self.log_group_name = log_group_name
        self.log_stream_name = log_stream_name

    @classmethod
    def from_request(cls, request: InvocationRequest, config: RuntimeConfig) -> "LambdaContext":
        return cls(
            aws_request_id=request.request_id,
            deadline_ms=request.deadline_ms,
            invoked_function_arn=request.invoked_function_arn,
            trace_id=request.trace_id,
            client_context=request.client_context,
            identity=request.cognito_identity,
            function_name=config.AWS_LAMBDA_FUNCTION_NAME,
            function_version=config.AWS_LAMBDA_FUNCTION_VERSION,
            memory_limit_in_mb=config.AWS_LAMBDA_FUNCTION_MEMORY_SIZE,
            log_group_name=config.AWS_LAMBDA_LOG_GROUP_NAME,
            log_stream_name=config.AWS_LAMBDA_LOG_STREAM_NAME,
        )

    def get_remaining_time_in_millis(self) -> int:
        return max(self.deadline_ms - int(time.time() * 1000), 0)

    def __repr__(self) -> str:
        return (
            f"LambdaContext(aws_request_id={self.aws_request_id!r}, "
            f"invoked_function_arn={self.invoked_function_arn!r}, "
            f"deadline_ms={self.deadline_ms})"
        )

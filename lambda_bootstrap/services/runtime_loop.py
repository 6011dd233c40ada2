"""
Runtime Loop Service

Process lifecycle of the bootstrap:
load the handler once, then poll -> invoke -> report until the process is killed.
"""

import logging
from typing import Optional

import httpx

from lambda_bootstrap.client import RuntimeApiClient
from lambda_bootstrap.config import RuntimeConfig
from lambda_bootstrap.core import request_context
from lambda_bootstrap.core.exceptions import (
    HandlerLoadError,
    ResponseSerializationError,
    RuntimeApiError,
)
from lambda_bootstrap.models.invocation import (
    ErrorKind,
    Failure,
    InvocationOutcome,
    InvocationRequest,
)
from lambda_bootstrap.services.handler_loader import HandlerLoader
from lambda_bootstrap.services.invocation_executor import InvocationExecutor

logger = logging.getLogger("bootstrap.runtime")

EXIT_STRAY_ERROR = 1


class RuntimeLoop:
    def __init__(self, client: RuntimeApiClient, config: RuntimeConfig):
        self.client = client
        self.config = config
        self.executor: Optional[InvocationExecutor] = None

    def initialize(self) -> InvocationExecutor:
        """
        Resolve the handler. Reports a load failure to /runtime/init/error.

        Raises:
            HandlerLoadError: the handler could not be loaded (already reported)
        """
        if self.executor is not None:
            return self.executor

        loader = HandlerLoader(self.config.HANDLER, self.config.LAMBDA_TASK_ROOT)
        try:
            handler = loader.load()
        except HandlerLoadError as e:
            logger.error(str(e), extra={"error_type": e.kind.wire_name})
            self._report_init_failure(e)
            raise

        self.executor = InvocationExecutor(handler, self.config)
        return self.executor

    def run(self) -> None:
        """
        Serve invocations forever.

        Raises:
            HandlerLoadError: the handler could not be loaded (already reported)
            SystemExit: an asynchronous error escaped every invocation window
        """
        executor = self.initialize()
        while True:
            self.run_once(executor)
            self._exit_on_stray_error(executor)

    def run_once(self, executor: InvocationExecutor) -> InvocationOutcome:
        request = executor.poll(self.client.poll_next)
        # An error that surfaced while polling is never handed to this request.
        self._exit_on_stray_error(executor)
        logger.info(
            "Invocation received",
            extra={
                "aws_request_id": request.request_id,
                "invoked_function_arn": request.invoked_function_arn,
            },
        )
        try:
            outcome = executor.invoke(request)
            self._report(request, outcome)
            return outcome
        finally:
            request_context.clear_request_context()

    def _exit_on_stray_error(self, executor: InvocationExecutor) -> None:
        if executor.stray_error is not None and self.config.EXIT_ON_STRAY_ERROR:
            logger.critical("Exiting after an asynchronous error outside of any invocation")
            raise SystemExit(EXIT_STRAY_ERROR)

    def _report(self, request: InvocationRequest, outcome: InvocationOutcome) -> None:
        try:
            if isinstance(outcome, Failure):
                logger.warning(
                    f"Invocation failed: {outcome.message}",
                    extra={"error_type": outcome.kind.wire_name},
                )
                self.client.post_failure(request.request_id, outcome)
                return
            try:
                self.client.post_success(request.request_id, outcome.value)
            except ResponseSerializationError as e:
                logger.warning(str(e))
                self.client.post_failure(
                    request.request_id, Failure.from_exception(ErrorKind.HANDLER_ERROR, e.cause)
                )
        except (httpx.HTTPError, RuntimeApiError) as e:
            logger.error(
                f"Failed to report outcome for {request.request_id}: {e}",
                extra={"error_type": type(e).__name__},
            )

    def _report_init_failure(self, error: HandlerLoadError) -> None:
        try:
            self.client.post_init_failure(Failure.from_exception(error.kind, error))
        except (httpx.HTTPError, RuntimeApiError) as e:
            logger.error(f"Failed to report init error: {e}")

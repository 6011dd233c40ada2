"""
Invocation Executor Service

Turns one handler call into exactly one InvocationOutcome.

Completion sources, first one wins:
1. the error-first callback
2. a raise from the initial call (HandlerError)
3. settlement of a returned awaitable
4. an asynchronous error caught by the armed ErrorCapture (HandlerUnhandledError)
"""

import asyncio
import functools
import inspect
import logging
import os
from typing import Any, Callable, Optional

from lambda_bootstrap.config import RuntimeConfig
from lambda_bootstrap.core import request_context
from lambda_bootstrap.core.capture import ErrorCapture
from lambda_bootstrap.core.completion import Completion
from lambda_bootstrap.models.context import LambdaContext
from lambda_bootstrap.models.invocation import InvocationOutcome, InvocationRequest
from lambda_bootstrap.services.handler_loader import LoadedHandler

logger = logging.getLogger("bootstrap.executor")

TRACE_ID_ENV = "_X_AMZN_TRACE_ID"


class InvocationExecutor:
    def __init__(
        self,
        handler: LoadedHandler,
        config: RuntimeConfig,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        """
        Args:
            handler: the handler resolved at process start
            config: RuntimeConfig instance
            loop: event loop running handler awaitables (a new one by default)
        """
        self.handler = handler
        self.config = config
        self.loop = loop or asyncio.new_event_loop()
        # Coroutines run up to their first suspension inside the initial call.
        self.loop.set_task_factory(asyncio.eager_task_factory)
        asyncio.set_event_loop(self.loop)

        self.stray_error: Optional[BaseException] = None
        self.capture = ErrorCapture(on_stray=self._on_stray)
        self.capture.install(self.loop)

    def invoke(self, request: InvocationRequest) -> InvocationOutcome:
        """
        Run the handler for one request and return its outcome.
        """
        context = self._prepare_context(request)
        # asyncio.run() inside a previous invocation clears the current loop.
        asyncio.set_event_loop(self.loop)
        completion = Completion(self.loop, request_id=request.request_id)

        with self.capture.window(functools.partial(completion.fail, unhandled=True)):
            self._start(completion, request.payload, context)
            outcome = self.loop.run_until_complete(completion.wait())

        logger.debug(
            f"Invocation finished with {outcome.status}",
            extra={"aws_request_id": request.request_id},
        )
        return outcome

    def poll(self, poll_next: Callable[[], InvocationRequest]) -> InvocationRequest:
        """
        Block on `poll_next` in a worker thread while the event loop keeps
        running. Work the handler left behind fails here, while disarmed,
        and lands on the stray path instead of the next invocation.
        """
        asyncio.set_event_loop(self.loop)
        return self.loop.run_until_complete(asyncio.to_thread(poll_next))

    def close(self) -> None:
        self.capture.uninstall()
        if not self.loop.is_closed():
            self.loop.close()

    def _start(self, completion: Completion, event: Any, context: LambdaContext) -> None:
        func = self.handler.func
        try:
            if self.handler.accepts_callback:
                result = func(event, context, completion.callback)
            else:
                result = func(event, context)
        except Exception as e:
            completion.fail(e, unhandled=False)
            return

        if inspect.isawaitable(result):
            self.loop.run_until_complete(self._schedule(completion, result))
            return

        if completion.mark_returned():
            # The callback fired during the call.
            return
        if result is None and self.handler.accepts_callback:
            return
        completion.succeed(result)

    async def _schedule(self, completion: Completion, awaitable: Any) -> None:
        try:
            task = asyncio.ensure_future(awaitable)
        except Exception as e:
            completion.fail(e, unhandled=False)
            return

        if task.done():
            _settle_from_task(completion, task, unhandled=False)
            return

        completion.mark_returned()
        task.add_done_callback(functools.partial(_settle_from_task, completion, unhandled=True))

    def _prepare_context(self, request: InvocationRequest) -> LambdaContext:
        request_context.set_request_id(request.request_id)
        request_context.set_trace_id(request.trace_id)

        if request.trace_id:
            os.environ[TRACE_ID_ENV] = request.trace_id
        else:
            os.environ.pop(TRACE_ID_ENV, None)

        return LambdaContext.from_request(request, self.config)

    def _on_stray(self, exc: BaseException) -> None:
        if self.stray_error is None:
            self.stray_error = exc


def _settle_from_task(completion: Completion, task: asyncio.Future, unhandled: bool) -> None:
    if task.cancelled():
        completion.fail(asyncio.CancelledError("handler task was cancelled"), unhandled=unhandled)
        return
    exc = task.exception()
    if exc is not None:
        completion.fail(exc, unhandled=unhandled)
    else:
        completion.succeed(task.result())

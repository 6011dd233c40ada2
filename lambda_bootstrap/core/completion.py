"""
One-shot completion latch for a single invocation.

Every completion signal (return value, raise, callback, awaitable settlement,
captured asynchronous error) writes here. The first write wins; later writes
are ignored. Writes may come from any thread.
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from lambda_bootstrap.models.invocation import ErrorKind, Failure, InvocationOutcome, Success

logger = logging.getLogger("bootstrap.executor")


class Completion:
    def __init__(self, loop: asyncio.AbstractEventLoop, request_id: str = ""):
        self.request_id = request_id
        self._loop = loop
        self._lock = threading.Lock()
        self._future: asyncio.Future = loop.create_future()
        self._outcome: Optional[InvocationOutcome] = None
        self._returned = False

    @property
    def settled(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> Optional[InvocationOutcome]:
        return self._outcome

    def mark_returned(self) -> bool:
        """
        The initial call has handed control back; later errors are unhandled.

        Returns True when the invocation had already settled.
        """
        with self._lock:
            self._returned = True
            return self._outcome is not None

    def succeed(self, value: Any) -> bool:
        return self._settle(lambda returned: Success(value=value))

    def fail(self, exc: BaseException, unhandled: Optional[bool] = None) -> bool:
        """
        Record a failure.

        Args:
            exc: the failing error
            unhandled: force the classification; None classifies by whether the
                initial call already returned
        """

        def build(returned: bool) -> Failure:
            late = returned if unhandled is None else unhandled
            kind = ErrorKind.HANDLER_UNHANDLED_ERROR if late else ErrorKind.HANDLER_ERROR
            return Failure.from_exception(kind, exc)

        return self._settle(build)

    def callback(self, error: Any = None, result: Any = None) -> None:
        """Error-first completion callback handed to the handler."""
        if error is None:
            self.succeed(result)
            return
        if not isinstance(error, BaseException):
            error = Exception(str(error))
        self.fail(error)

    async def wait(self) -> InvocationOutcome:
        return await self._future

    def _settle(self, build) -> bool:
        with self._lock:
            if self._outcome is not None:
                logger.debug(
                    "Discarding completion signal for settled invocation",
                    extra={"aws_request_id": self.request_id},
                )
                return False
            self._outcome = build(self._returned)

        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._resolve)
        return True

    def _resolve(self) -> None:
        if not self._future.done():
            self._future.set_result(self._outcome)

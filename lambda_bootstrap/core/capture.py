"""
Scoped capture of asynchronous failures.

Two process-wide hooks are installed once:
- threading.excepthook: an uncaught error in a thread started by the handler
- the event loop exception handler: an asyncio failure nobody handled
  (task exception never retrieved, failing loop callbacks)

Errors are routed to the sink of the invocation currently armed. While
disarmed they are never attributed to any request; they go to `on_stray`.
"""

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

logger = logging.getLogger("bootstrap.executor")

ErrorSink = Callable[[BaseException], object]


class ErrorCapture:
    def __init__(self, on_stray: Optional[ErrorSink] = None):
        self.on_stray = on_stray
        self.stray_count = 0
        self.last_stray: Optional[BaseException] = None
        self._lock = threading.Lock()
        self._sink: Optional[ErrorSink] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_thread_hook = None

    @property
    def armed(self) -> bool:
        return self._sink is not None

    @property
    def installed(self) -> bool:
        return self._previous_thread_hook is not None

    def install(self, loop: asyncio.AbstractEventLoop) -> None:
        if self.installed:
            return
        self._loop = loop
        self._previous_thread_hook = threading.excepthook
        threading.excepthook = self._thread_excepthook
        loop.set_exception_handler(self._loop_exception_handler)

    def uninstall(self) -> None:
        if not self.installed:
            return
        threading.excepthook = self._previous_thread_hook
        self._previous_thread_hook = None
        if self._loop is not None and not self._loop.is_closed():
            self._loop.set_exception_handler(None)
        self._loop = None

    def arm(self, sink: ErrorSink) -> None:
        with self._lock:
            if self._sink is not None:
                raise RuntimeError("error capture is already armed")
            self._sink = sink

    def disarm(self) -> None:
        with self._lock:
            self._sink = None

    @contextmanager
    def window(self, sink: ErrorSink) -> Iterator["ErrorCapture"]:
        """Arm for the duration of one invocation."""
        self.arm(sink)
        try:
            yield self
        finally:
            self.disarm()

    def deliver(self, exc: BaseException, origin: str) -> bool:
        """
        Route a captured error. Returns True when it was attributed to an armed invocation.
        """
        with self._lock:
            sink = self._sink
            if sink is None:
                self.stray_count += 1
                self.last_stray = exc
        if sink is not None:
            logger.debug(f"Captured asynchronous error from {origin}: {exc!r}")
            sink(exc)
            return True

        logger.error(
            f"Asynchronous error from {origin} outside of any invocation: {exc!r}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        if self.on_stray is not None:
            self.on_stray(exc)
        return False

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit or args.exc_value is None:
            return
        thread_name = args.thread.name if args.thread is not None else "unknown"
        self.deliver(args.exc_value, f"thread {thread_name}")

    def _loop_exception_handler(self, loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        if exc is None:
            loop.default_exception_handler(context)
            return
        self.deliver(exc, context.get("message") or "event loop")

import asyncio
import gc
import os
import threading
import time

import pytest

from lambda_bootstrap.models.invocation import (
    ErrorKind,
    Failure,
    HandlerSpec,
    InvocationRequest,
    Success,
)
from lambda_bootstrap.services.handler_loader import LoadedHandler, accepts_callback
from lambda_bootstrap.services.invocation_executor import InvocationExecutor


@pytest.fixture
def make_executor(make_config):
    executors = []

    def _make(func) -> InvocationExecutor:
        spec = HandlerSpec(
            specifier="inline.handler",
            module_path="inline",
            member_name="handler",
            task_root="/var/task",
        )
        loaded = LoadedHandler(func=func, spec=spec, accepts_callback=accepts_callback(func))
        executor = InvocationExecutor(loaded, make_config("inline.handler"))
        executors.append(executor)
        return executor

    yield _make

    for executor in executors:
        executor.close()


def make_request(request_id="req-1", payload=None, trace_id="Root=1-abc-def"):
    return InvocationRequest(
        request_id=request_id,
        deadline_ms=0,
        invoked_function_arn="arn:aws:lambda:us-east-1:123456789012:function:inline",
        trace_id=trace_id,
        payload=payload if payload is not None else {"foo": "bar"},
    )


def test_plain_return_is_success(make_executor):
    executor = make_executor(lambda event, context: {"echo": event})

    outcome = executor.invoke(make_request())

    assert outcome == Success(value={"echo": {"foo": "bar"}})


def test_none_return_without_callback_is_success(make_executor):
    executor = make_executor(lambda event, context: None)

    assert executor.invoke(make_request()) == Success(value=None)


def test_context_and_trace_env(make_executor):
    seen = {}

    def handler(event, context):
        seen["request_id"] = context.aws_request_id
        seen["arn"] = context.invoked_function_arn
        seen["env"] = os.environ.get("_X_AMZN_TRACE_ID")
        return "ok"

    executor = make_executor(handler)
    executor.invoke(make_request())

    assert seen == {
        "request_id": "req-1",
        "arn": "arn:aws:lambda:us-east-1:123456789012:function:inline",
        "env": "Root=1-abc-def",
    }


def test_trace_env_cleared_when_absent(make_executor):
    executor = make_executor(lambda event, context: os.environ.get("_X_AMZN_TRACE_ID"))

    executor.invoke(make_request(trace_id="Root=1-first"))
    outcome = executor.invoke(make_request(trace_id=None))

    assert outcome == Success(value=None)


def test_sync_raise_is_handler_error(make_executor):
    def handler(event, context):
        raise KeyError("missing")

    outcome = make_executor(handler).invoke(make_request())

    assert isinstance(outcome, Failure)
    assert outcome.kind == ErrorKind.HANDLER_ERROR
    assert outcome.stack_lines[0] == "KeyError: 'missing'"
    assert any("raise KeyError" in line for line in outcome.stack_lines)


def test_coroutine_result(make_executor):
    async def handler(event, context):
        await asyncio.sleep(0)
        return {"async": True}

    assert make_executor(handler).invoke(make_request()) == Success(value={"async": True})


def test_coroutine_failing_before_first_await_is_handler_error(make_executor):
    async def handler(event, context):
        raise ValueError("early")

    outcome = make_executor(handler).invoke(make_request())

    assert outcome.kind == ErrorKind.HANDLER_ERROR


def test_coroutine_failing_after_await_is_unhandled(make_executor):
    async def handler(event, context):
        await asyncio.sleep(0)
        raise ValueError("late")

    outcome = make_executor(handler).invoke(make_request())

    assert outcome.kind == ErrorKind.HANDLER_UNHANDLED_ERROR
    assert outcome.message == "late"


def test_callback_during_call_with_error_is_handler_error(make_executor):
    def handler(event, context, callback):
        callback(ValueError("direct"))

    outcome = make_executor(handler).invoke(make_request())

    assert outcome.kind == ErrorKind.HANDLER_ERROR


def test_callback_from_thread(make_executor):
    def handler(event, context, callback):
        threading.Timer(0.01, callback, args=(None, "later")).start()

    assert make_executor(handler).invoke(make_request()) == Success(value="later")


def test_captured_thread_error_is_unhandled(make_executor):
    def handler(event, context, callback):
        def fail():
            raise RuntimeError("in thread")

        threading.Thread(target=fail).start()

    outcome = make_executor(handler).invoke(make_request())

    assert outcome.kind == ErrorKind.HANDLER_UNHANDLED_ERROR
    assert outcome.message == "in thread"


def test_capture_window_closes_after_each_invocation(make_executor):
    armed_during_call = []

    executor = make_executor(
        lambda event, context: armed_during_call.append(executor.capture.armed)
    )
    executor.invoke(make_request())

    assert armed_during_call == [True]
    assert not executor.capture.armed
    assert executor.capture.installed


def test_settled_awaitable_rejection_is_ignored(make_executor):
    """The handler's callback wins; the later failing task has no effect."""

    async def fail_later():
        await asyncio.sleep(0.01)
        raise RuntimeError("too late")

    def handler(event, context, callback):
        callback(None, "first")
        return fail_later()

    outcome = make_executor(handler).invoke(make_request())

    assert outcome == Success(value="first")


def test_invocations_do_not_share_outcomes(make_executor):
    def handler(event, context):
        if event["fail"]:
            raise RuntimeError("boom")
        return event["value"]

    executor = make_executor(handler)

    first = executor.invoke(make_request("req-1", {"fail": True}))
    second = executor.invoke(make_request("req-2", {"fail": False, "value": 2}))

    assert first.kind == ErrorKind.HANDLER_ERROR
    assert second == Success(value=2)


def test_handler_using_asyncio_run(make_executor):
    async def compute():
        await asyncio.sleep(0)
        return 7

    executor = make_executor(lambda event, context: asyncio.run(compute()))

    assert executor.invoke(make_request()) == Success(value=7)
    assert executor.invoke(make_request("req-2")) == Success(value=7)


def test_catch_all_handler_returning_none_is_success(make_executor):
    def handler(*args, **kwargs):
        return None

    executor = make_executor(handler)

    assert not executor.handler.accepts_callback
    assert executor.invoke(make_request()) == Success(value=None)


def test_leftover_task_fails_on_stray_path_while_polling(make_executor):
    async def fail_later():
        await asyncio.sleep(0.01)
        raise RuntimeError("leftover")

    async def handler(event, context):
        asyncio.get_running_loop().create_task(fail_later())
        return "done"

    executor = make_executor(handler)
    assert executor.invoke(make_request()) == Success(value="done")

    def poll_next():
        time.sleep(0.1)
        gc.collect()
        return make_request("req-2")

    request = executor.poll(poll_next)

    assert request.request_id == "req-2"
    assert str(executor.stray_error) == "leftover"
    assert executor.capture.stray_count == 1

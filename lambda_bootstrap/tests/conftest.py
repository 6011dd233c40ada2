import asyncio
import threading

import pytest

from lambda_bootstrap.client import RuntimeApiClient
from lambda_bootstrap.config import RuntimeConfig
from lambda_bootstrap.core.exceptions import HandlerLoadError
from lambda_bootstrap.services.runtime_loop import RuntimeLoop
from lambda_bootstrap.tests.fake_runtime_api import (
    HANDLERS_DIR,
    RUNTIME_API_HOST,
    FakeRuntimeApi,
    NoMoreEvents,
)


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch):
    """Executors install hooks and mutate os.environ; restore both after each test."""
    monkeypatch.delenv("_X_AMZN_TRACE_ID", raising=False)
    original_hook = threading.excepthook
    yield
    threading.excepthook = original_hook
    asyncio.set_event_loop(None)


@pytest.fixture
def runtime_api():
    return FakeRuntimeApi()


@pytest.fixture
def make_config():
    def _make(handler: str, **overrides) -> RuntimeConfig:
        values = {
            "HANDLER": handler,
            "LAMBDA_TASK_ROOT": str(HANDLERS_DIR),
            "AWS_LAMBDA_RUNTIME_API": RUNTIME_API_HOST,
        }
        values.update(overrides)
        return RuntimeConfig(**values)

    return _make


@pytest.fixture
def run_bootstrap(runtime_api, make_config):
    """
    Run the loop against the fake Runtime API until it runs out of events
    (or initialization fails). Returns the RuntimeLoop.
    """
    runtimes = []

    def _run(handler: str, **overrides) -> RuntimeLoop:
        runtime = RuntimeLoop(RuntimeApiClient(runtime_api.client()), make_config(handler, **overrides))
        runtimes.append(runtime)
        try:
            runtime.run()
        except (NoMoreEvents, HandlerLoadError):
            pass
        return runtime

    yield _run

    for runtime in runtimes:
        if runtime.executor is not None:
            runtime.executor.close()
        runtime.client.close()

"""
Handler Loader Service

Resolves the handler specifier (`_HANDLER`) into a callable, once, at process start.
Failures are classified as ErrorLoadingHandler or WrongHandlerType.
"""

import importlib
import inspect
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable

from lambda_bootstrap.core.exceptions import HandlerLoadError
from lambda_bootstrap.models.invocation import ErrorKind, HandlerSpec

logger = logging.getLogger("bootstrap.loader")


@dataclass(frozen=True)
class LoadedHandler:
    func: Callable[..., Any]
    spec: HandlerSpec
    accepts_callback: bool


def parse_handler_spec(specifier: str, task_root: str) -> HandlerSpec:
    """
    Split `<module_path>.<member_name>` on the last dot.

    Raises:
        HandlerLoadError: the specifier has no module path or no member name
    """
    module_path, sep, member_name = specifier.rpartition(".")
    if not sep or not module_path.strip("/") or not member_name:
        raise HandlerLoadError(
            ErrorKind.ERROR_LOADING_HANDLER,
            specifier,
            "Bad handler specifier, expected <module>.<function>",
        )
    return HandlerSpec(
        specifier=specifier,
        module_path=module_path,
        member_name=member_name,
        task_root=task_root,
    )


def accepts_callback(func: Callable[..., Any]) -> bool:
    """
    True when the callable declares a required third positional parameter.

    `*args` and a defaulted third parameter do not count: such handlers are
    called as (event, context) and a None return completes the invocation.
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    positional = [
        param
        for param in signature.parameters.values()
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 3 and positional[2].default is inspect.Parameter.empty


class HandlerLoader:
    def __init__(self, specifier: str, task_root: str):
        """
        Args:
            specifier: handler specifier, e.g. "app.handler" or "lib/jobs/app.handler"
            task_root: directory the module path is resolved against
        """
        self.specifier = specifier
        self.task_root = task_root

    def load(self) -> LoadedHandler:
        """
        Import the module and read the handler member.

        Raises:
            HandlerLoadError: module missing, module initialization failed, or the
                member is not callable
        """
        spec = parse_handler_spec(self.specifier, self.task_root)

        if self.task_root not in sys.path:
            sys.path.insert(0, self.task_root)

        logger.info(
            f"Loading handler {spec.member_name} from module {spec.module_name}",
            extra={"task_root": self.task_root},
        )
        try:
            module = importlib.import_module(spec.module_name)
        except Exception as e:
            raise HandlerLoadError(ErrorKind.ERROR_LOADING_HANDLER, spec.specifier, str(e)) from e

        func = getattr(module, spec.member_name, None)
        if not callable(func):
            raise HandlerLoadError(
                ErrorKind.WRONG_HANDLER_TYPE,
                spec.specifier,
                f"The handler '{spec.member_name}' is not a function: {type(func).__name__}",
            )

        return LoadedHandler(func=func, spec=spec, accepts_callback=accepts_callback(func))

# pwlifecycle/reporting/steps.py
"""
Step Interceptor

Wraps page-object actions as named steps. Entering a step advances the
worker's step tracker; a failing step is written to the report with its
name, message, stack trace and (if enabled) a screenshot of the current
page, and the original exception is re-raised unchanged.

Example:
    >>> class LoginPage(BasePage):
    ...     @step("Log in as {username}")
    ...     def login(self, username, password):
    ...         ...
    >>> run_step("Accept cookies", lambda: page.click("#accept"))
"""

import functools
import inspect
import re
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar, Union

import pytest

from pwlifecycle.core.exceptions.artifact import ArtifactException
from pwlifecycle.core.exceptions.enums import ErrorCategory
from pwlifecycle.core.logger import get_logger, log_test_step
from pwlifecycle.core.worker import WorkerContext, get_worker_context
from pwlifecycle.reporting.html_reporter import (
    escape_html,
    to_collapsible_stack_html,
    to_short_error,
)

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
_BOUND_FIRST_PARAMS = ("self", "cls")
# Control flow, not failures
_UNREPORTED = (KeyboardInterrupt, SystemExit, GeneratorExit, pytest.skip.Exception, pytest.xfail.Exception)


def _safe_str(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return object.__repr__(value)


def _collect_arguments(
        func: Optional[Callable[..., Any]],
        args: Sequence[Any],
        kwargs: Dict[str, Any]
) -> Tuple[List[Any], Dict[str, Any]]:
    """Split a call into indexed and named values, leaving out ``self``/``cls``."""
    if func is None:
        return list(args), dict(kwargs)

    try:
        signature = inspect.signature(func)
        bound = signature.bind_partial(*args, **kwargs)
        bound.apply_defaults()
    except (TypeError, ValueError):
        return list(args), dict(kwargs)

    indexed: List[Any] = []
    named: Dict[str, Any] = {}
    parameters = list(signature.parameters.values())

    for position, parameter in enumerate(parameters):
        if position == 0 and parameter.name in _BOUND_FIRST_PARAMS:
            continue
        if parameter.name not in bound.arguments:
            continue
        value = bound.arguments[parameter.name]
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            indexed.extend(value)
        elif parameter.kind is inspect.Parameter.VAR_KEYWORD:
            named.update(value)
        else:
            indexed.append(value)
            named[parameter.name] = value

    return indexed, named


def format_step_name(
        template: Optional[str],
        func: Optional[Callable[..., Any]] = None,
        args: Sequence[Any] = (),
        kwargs: Optional[Dict[str, Any]] = None
) -> str:
    """
    Substitute ``{name}`` and ``{index}`` placeholders with argument values.

    Indexes count arguments after ``self``/``cls``. Placeholders without a
    matching argument stay in the name verbatim.

    Example:
        >>> def fill(field, value): ...
        >>> format_step_name("Fill {field} with {1}", fill, ("email", "a@b.c"))
        'Fill email with a@b.c'
        >>> format_step_name("Fill {missing}", fill, ("email", "a@b.c"))
        'Fill {missing}'
    """
    if template is None:
        return ""

    indexed, named = _collect_arguments(func, args, kwargs or {})

    def substitute(match: "re.Match[str]") -> str:
        key = match.group(1)
        if key in named:
            return _safe_str(named[key])
        if key.isdigit() and int(key) < len(indexed):
            return _safe_str(indexed[int(key)])
        return match.group(0)

    return _PLACEHOLDER.sub(substitute, template)


def capture_step_screenshot(worker: WorkerContext) -> bytes:
    """
    Screenshot the worker's current page without creating a session.

    Raises:
        ArtifactException: If the worker has no live session
    """
    session = worker.registry.current()
    if session is None or not session.is_valid():
        raise ArtifactException("No live browser session to capture", artifact_type="screenshot")
    return session.screenshot()


def _report_step_failure(worker: WorkerContext, name: str, index: int, error: BaseException) -> None:
    logger = get_logger("steps")
    logger.error(
        f"Step failed: {name}",
        step_name=name,
        step_index=index,
        error=to_short_error(error),
        error_category=ErrorCategory.STEP.value
    )

    entry = worker.report_entry
    screenshot: Optional[bytes] = None

    if worker.policy.screenshot_on_step_failure:
        try:
            screenshot = capture_step_screenshot(worker)
        except Exception as capture_error:
            logger.warning(
                f"Unable to capture step screenshot: {capture_error}",
                step_name=name,
                error=str(capture_error)
            )
            if entry is not None:
                entry.warning(f"Unable to capture step screenshot: {escape_html(str(capture_error))}")

    if entry is None:
        return

    message = escape_html(str(error))
    stack = to_collapsible_stack_html(error)
    if screenshot is not None:
        entry.fail(f"{escape_html(name)}<br/>{message}<br/>{stack}", media=screenshot)
    else:
        entry.fail(f"{escape_html(name)} (no screenshot)<br/>{message}<br/>{stack}")


def run_step(name: str, operation: Callable[[], T], worker: Optional[WorkerContext] = None) -> T:
    """
    Run ``operation`` as the next step of the current test.

    Args:
        name: Display name of the step
        operation: Zero-argument callable doing the work
        worker: Worker context (calling thread's context if None)

    Returns:
        Whatever ``operation`` returns

    Raises:
        BaseException: Whatever ``operation`` raises, unchanged. Interrupts
            ``SystemExit`` and pytest skips pass through without a report entry.
    """
    worker = worker or get_worker_context()
    index = worker.steps.advance(name)
    log_test_step(name, index)

    try:
        return operation()
    except _UNREPORTED:
        raise
    except BaseException as error:
        try:
            _report_step_failure(worker, name, index, error)
        except Exception as report_error:
            get_logger("steps").warning(
                f"Could not report step failure: {report_error}",
                step_name=name,
                error=str(report_error)
            )
        raise


def step(template: Union[str, Callable[..., Any]] = "") -> Any:
    """
    Decorator marking a function or method as a tracked step.

    Args:
        template: Step name with optional ``{0}``/``{param}`` placeholders;
            the function name when empty. ``@step`` without arguments also works.
    """

    def decorator(func: F) -> F:
        name_template = template if isinstance(template, str) and template.strip() else func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            name = format_step_name(name_template, func, args, kwargs)
            return run_step(name, lambda: func(*args, **kwargs))

        return wrapper  # type: ignore[return-value]

    if callable(template):
        func, template = template, ""
        return decorator(func)

    return decorator

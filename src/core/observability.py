"""Observability framework for crewstats.

Structured logging setup shared by the CLI and any embedding application,
plus the tracing decorator wrapped around store calls.
"""

import asyncio
import functools
import json
import logging
import re
import sys
import time
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar, cast

import structlog
from pydantic import BaseModel
from structlog.contextvars import bind_contextvars, unbind_contextvars

_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        *_SHARED_PROCESSORS,
        structlog.processors.dict_tracebacks,
        structlog.dev.ConsoleRenderer() if sys.stderr.isatty() else structlog.processors.JSONRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger("crewstats.trace")

F = TypeVar("F", bound=Callable[..., Any])

# DSNs carry credentials
_SENSITIVE_KEY_RE = re.compile(r"(token|key|secret|password|pass|dsn|database_url)", re.IGNORECASE)


def configure_stdlib_json_logging(level: str = "INFO", file_target: str | None = None) -> None:
    """Route stdlib ``logging`` records through structlog's JSON formatter.

    Modules log with ``logging.getLogger(__name__)``; after this call their
    records and structlog's own events share one JSON line format on stderr
    (and on ``file_target`` when given).
    """
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if file_target:
        handlers.append(logging.FileHandler(file_target, encoding="utf-8"))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation id to every log line emitted in the current context."""
    bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    unbind_contextvars("correlation_id")


# ============================================================================
# Argument rendering
# ============================================================================


def _mask(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return "***" if len(text) <= 8 else f"{text[:4]}…{text[-3:]}"


def _redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _mask(v) if _SENSITIVE_KEY_RE.search(str(k)) else _redact(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_redact(item) for item in obj]
    return obj


def _render(value: Any, limit: int) -> Any:
    """JSON-friendly, length-capped form of a value for a log line."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_unset=True)
    if isinstance(value, list) and value and isinstance(value[0], BaseModel):
        return f"<{len(value)} {type(value[0]).__name__} rows>"
    try:
        text = json.dumps(value, default=str)
    except (TypeError, ValueError):
        text = repr(value)
    else:
        if len(text) <= limit:
            return json.loads(text)
    return text[:limit] + "..." if len(text) > limit else text


def _render_kwarg(key: str, value: Any, limit: int) -> Any:
    rendered = _render(value, limit)
    if not _SENSITIVE_KEY_RE.search(key):
        return rendered
    return _redact(rendered) if isinstance(rendered, dict | list) else _mask(rendered)


# ============================================================================
# Tracing decorator
# ============================================================================


@dataclass(slots=True)
class CallTrace:
    """One traced call; logged on entry and again on exit."""

    name: str
    execution_id: str
    is_async: bool
    metadata: dict[str, Any]
    started: float = field(default_factory=time.perf_counter)
    args: list[Any] | None = None
    kwargs: dict[str, Any] | None = None

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


def _emit(level: str, event: str, **kw: Any) -> None:
    getattr(logger, level.lower(), logger.info)(event, **kw)


def debug_wrapper(
    *,
    capture_result: bool = True,
    capture_args: bool = True,
    max_arg_length: int = 1000,
    log_level: str = "INFO",
    add_metadata: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """Trace entry, exit and failure of a sync or async callable.

    Arguments are rendered with sensitive keyword values masked. Failures are
    logged with their traceback and re-raised unchanged.

    Args:
        capture_result: Log the (rendered) return value
        capture_args: Log the (rendered) call arguments
        max_arg_length: Cap for each rendered argument
        log_level: Level of the entry and exit lines
        add_metadata: Extra fields attached to the entry line

    Example:
        >>> @debug_wrapper(capture_result=False, log_level="DEBUG")
        ... async def get_game(self, game_id: int) -> MatchRecord | None:
        ...     ...
    """

    def decorator(func: F) -> F:
        name = f"{func.__module__}.{func.__qualname__}"
        is_async = asyncio.iscoroutinefunction(func)

        def begin(args: tuple[Any, ...], kwargs: dict[str, Any]) -> CallTrace:
            trace = CallTrace(
                name=name,
                execution_id=f"{name}_{time.time_ns() // 1000}",
                is_async=is_async,
                metadata=dict(add_metadata or {}),
            )
            if capture_args:
                trace.args = [_render(a, max_arg_length) for a in args]
                trace.kwargs = {k: _render_kwarg(k, v, max_arg_length) for k, v in kwargs.items()}
            bind_contextvars(execution_id=trace.execution_id)
            _emit(
                log_level,
                f"Executing function: {name}",
                execution_id=trace.execution_id,
                args=trace.args,
                kwargs=trace.kwargs,
                **trace.metadata,
            )
            return trace

        def finish(trace: CallTrace, result: Any) -> None:
            _emit(
                log_level,
                f"Successfully executed: {name}",
                execution_id=trace.execution_id,
                duration_ms=trace.elapsed_ms(),
                result=_redact(_render(result, max_arg_length)) if capture_result else None,
            )

        def fail(trace: CallTrace, exc: Exception) -> None:
            logger.error(
                f"Error in function: {name}",
                execution_id=trace.execution_id,
                duration_ms=trace.elapsed_ms(),
                error_type=type(exc).__name__,
                error_message=str(exc),
                traceback=traceback.format_exc(),
                args=trace.args,
                kwargs=trace.kwargs,
            )

        if is_async:

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                trace = begin(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    fail(trace, e)
                    raise
                else:
                    finish(trace, result)
                    return result
                finally:
                    unbind_contextvars("execution_id")

            return cast(F, async_wrapper)

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            trace = begin(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                fail(trace, e)
                raise
            else:
                finish(trace, result)
                return result
            finally:
                unbind_contextvars("execution_id")

        return cast(F, sync_wrapper)

    return decorator


def trace_adapter(func: F) -> F:
    """Trace a store adapter method at DEBUG level without its result."""
    return debug_wrapper(
        capture_result=False,
        log_level="DEBUG",
        add_metadata={"layer": "adapter"},
    )(func)

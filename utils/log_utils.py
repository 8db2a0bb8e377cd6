from __future__ import annotations

import functools
import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar, cast

from errors import MathError

F = TypeVar("F", bound=Callable[..., Any])

# Attributes every LogRecord has; anything else was passed through ``extra``.
_RECORD_KEYS = frozenset({
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module",
    "msecs", "message", "msg", "name", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "thread",
    "threadName", "taskName",
})

_MAX_ARG_CHARS = 1000


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_KEYS}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, ``extra`` fields included."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_extra_fields(record))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Standard text format with ``key=value`` pairs for the ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        s = super().format(record)
        extra = _extra_fields(record)
        if extra:
            s += " " + " ".join(f"{k}={v}" for k, v in extra.items())
        return s


def configure_logging(level: str | int = "WARNING", json_format: bool = False) -> logging.Logger:
    """Attach a stderr handler to the root logger.

    Meant for the command line entry point, which owns the process.
    Calling it again replaces the handler installed by the previous call
    instead of stacking a second one; handlers installed by others are
    left alone.

    Parameters
    ----------
    level : str or int, default "WARNING"
        Logging level name or number.
    json_format : bool, default False
        Emit JSON lines instead of text.

    Returns
    -------
    logging.Logger
        The root logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        if getattr(handler, "_symcalc", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler._symcalc = True  # type: ignore[attr-defined]
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(TextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(handler)
    return root


def _truncate(value: Any) -> str:
    text = str(value)
    if len(text) > _MAX_ARG_CHARS:
        return text[:_MAX_ARG_CHARS] + "...(truncated)"
    return text


def log_execution_time(func: F) -> F:
    """Decorator to log the arguments, duration and outcome of a call.

    Logs:
    - Start of execution with arguments (truncated if too large), at DEBUG
    - End of execution with duration, at DEBUG
    - Engine errors (``MathError``) at INFO, they are expected outcomes
    - Any other exception at ERROR, with traceback
    """
    op_logger = logging.getLogger(func.__module__)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        func_name = func.__name__
        if op_logger.isEnabledFor(logging.DEBUG):
            op_logger.debug(
                f"Starting {func_name}",
                extra={
                    "call_args": [_truncate(a) for a in args],
                    "call_kwargs": {k: _truncate(v) for k, v in kwargs.items()},
                },
            )

        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except MathError as e:
            op_logger.info(
                f"Failed {func_name}",
                extra={
                    "duration_seconds": round(time.perf_counter() - start_time, 6),
                    "error_code": e.code,
                    "error": e.message,
                },
            )
            raise
        except Exception as e:
            op_logger.error(
                f"Failed {func_name}",
                exc_info=True,
                extra={
                    "duration_seconds": round(time.perf_counter() - start_time, 6),
                    "error_type": type(e).__name__,
                },
            )
            raise

        op_logger.debug(
            f"Completed {func_name}",
            extra={"duration_seconds": round(time.perf_counter() - start_time, 6)},
        )
        return result

    return cast(F, wrapper)

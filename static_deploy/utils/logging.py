"""
Logging for static-deploy.

Console output is colorized through coloredlogs, or one JSON object per line
when ``LOG_FORMAT=json`` (for CI log collectors). Each deploy run carries a
correlation ID in a context variable; worker threads run in a copy of the
run's context, so every record of a run can be grouped by it.

Example usage:
    >>> from static_deploy.utils.logging import get_logger, set_correlation_id
    >>>
    >>> logger = get_logger(__name__)
    >>> set_correlation_id("deploy-12345")
    >>> logger.info("uploading: index.html")
"""

import functools
import json
import logging
import os
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, TypeVar, cast

import coloredlogs

F = TypeVar("F", bound=Callable[..., Any])

CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
CONSOLE_DATE_FORMAT = "%H:%M:%S"

_run_id: ContextVar[Optional[str]] = ContextVar("deploy_run_id", default=None)

# Attributes every LogRecord has; anything else was passed through ``extra``
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def get_correlation_id() -> str:
    """Correlation ID of the current context, generated on first use."""
    run_id = _run_id.get()
    if run_id is None:
        run_id = uuid.uuid4().hex
        _run_id.set(run_id)
    return run_id


def set_correlation_id(run_id: str) -> None:
    _run_id.set(run_id)


def clear_correlation_id() -> None:
    _run_id.set(None)


class JSONFormatter(logging.Formatter):
    """
    Render records as single-line JSON.

    Example output:
        {"timestamp": "2026-01-04T10:30:15.123456+00:00", "level": "INFO",
         "logger": "static_deploy.deployer.deployer",
         "message": "uploading: assets/app.js", "correlation_id": "9f0c...",
         "location": "deployer.py:119", "extra": {"remote_key": "/assets/app.js"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
            "location": f"{record.filename}:{record.lineno}",
        }

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            payload["extra"] = extra

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Install the console handler on the root logger, replacing existing ones.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Colorize text output; ignored for JSON output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    if os.getenv("LOG_FORMAT", "text").lower() == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root.addHandler(handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            logger=root,
            fmt=CONSOLE_FORMAT,
            datefmt=CONSOLE_DATE_FORMAT,
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATE_FORMAT))
        root.addHandler(handler)

    # botocore logs every request at DEBUG
    logging.getLogger("botocore").setLevel(max(log_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_function_call(func: F) -> F:
    """
    Log entry and exit of ``func`` at DEBUG, and any exception at ERROR.

    Only the type of the return value is logged, never the value.
    Exceptions are re-raised unchanged.

    Example:
        >>> @log_function_call
        ... def load_config(path):
        ...     ...
        >>> # DEBUG ENTER load_config(path='.deploy.yaml')
        >>> # DEBUG EXIT load_config -> dict (0.01s)
    """
    logger = get_logger(func.__module__)
    name = func.__name__
    params = func.__code__.co_varnames[: func.__code__.co_argcount]

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        call = ", ".join(
            [f"{p}={a!r}" for p, a in zip(params, args)]
            + [f"{k}={v!r}" for k, v in kwargs.items()]
        )
        logger.debug(f"ENTER {name}({call})", extra={"event": "function_entry"})

        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as error:
            logger.error(
                f"ERROR {name} raised {type(error).__name__}: {error}",
                extra={
                    "event": "function_error",
                    "duration_seconds": time.perf_counter() - started,
                },
            )
            raise

        elapsed = time.perf_counter() - started
        logger.debug(
            f"EXIT {name} -> {type(result).__name__} ({elapsed:.2f}s)",
            extra={"event": "function_exit", "duration_seconds": elapsed},
        )
        return result

    return cast(F, wrapper)

"""Logging and Logfire tracing for the Library Loans service."""

import functools
import logging
import sys
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

from .config import LibraryConfig, get_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: LibraryConfig | None = None) -> None:
    """Configure the root logger from the service configuration."""
    config = config or get_config()
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def configure_observability(config: LibraryConfig | None = None) -> None:
    """Configure logging and Logfire in one call."""
    config = config or get_config()
    configure_logging(config)
    logfire.configure(
        service_name=config.service_name,
        send_to_logfire=config.logfire_send,
        console=None if config.logfire_console else False,
    )
    logger.info(
        "Observability configured (send_to_logfire=%s, console=%s)",
        config.logfire_send,
        config.logfire_console,
    )


def traced(operation: str):
    """Decorator wrapping a service operation in a Logfire span.

    The span records the operation's scalar keyword arguments, whether it
    succeeded and how long it took. Exceptions are recorded and re-raised.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with logfire.span(
                f"service.{operation}",
                operation=operation,
                component=operation.split(".", 1)[0],
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", kwargs)

                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error", str(e))
                    span.set_attribute("operation.error_type", type(e).__name__)
                    raise

                span.set_attribute("operation.success", True)
                span.set_attribute(
                    "operation.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                _add_result_attributes(span, result)
                return result

        return wrapper

    return decorator


def _add_attributes(span, prefix: str, data: dict):
    for key, value in data.items():
        if isinstance(value, str | int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _add_result_attributes(span, result: Any):
    if result is None:
        span.set_attribute("result.found", False)
    elif hasattr(result, "total") and hasattr(result, "items"):
        span.set_attribute("result.total", result.total)
        span.set_attribute("result.item_count", len(result.items))
    elif isinstance(result, list):
        span.set_attribute("result.item_count", len(result))
    elif getattr(result, "id", None) is not None:
        span.set_attribute("result.id", result.id)

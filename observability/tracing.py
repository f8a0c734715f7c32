"""Optional Logfire tracing.

When enabled, Logfire is configured once per process and instruments the
PydanticAI agents used by the validator. trace_operation wraps a unit of
work (one notice board build, one program evaluation) in a span; with
tracing off it only records the elapsed time at DEBUG.

Requirements:
    pip install logfire

Enable via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional for cloud dashboard
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

logger = logging.getLogger(__name__)


@dataclass
class TracingContext:
    """Process-wide tracing state.

    Attributes:
        enabled: Tracing requested and Logfire configured successfully
        service_name: Service name reported to Logfire
    """
    enabled: bool = False
    service_name: str = "noticeboard"


_context = TracingContext()


def setup_tracing(enabled: bool = False, service_name: str = "noticeboard", token: str = "") -> TracingContext:
    """Configure Logfire and instrument PydanticAI.

    Safe to call more than once; only the first successful setup applies.
    A missing `logfire` package or a configuration error leaves tracing off.

    Args:
        enabled: Whether tracing was requested
        service_name: Service name for spans
        token: Logfire write token (optional)

    Returns:
        The process TracingContext
    """
    if _context.enabled or not enabled:
        return _context

    try:
        import logfire
    except ImportError:
        logger.warning("Logfire not installed, tracing stays off")
        return _context

    try:
        logfire.configure(service_name=service_name, token=token or None)
        logfire.instrument_pydantic_ai()
    except Exception as e:
        logger.error("Logfire setup failed | error=%s", e, exc_info=True)
        return _context

    _context.enabled = True
    _context.service_name = service_name
    logger.info("Logfire tracing enabled | service=%s", service_name)
    return _context


@contextmanager
def trace_operation(name: str, attributes: dict[str, Any] | None = None) -> Iterator[dict[str, Any]]:
    """Span around a unit of work.

    Yields a dict; whatever the caller puts in it is attached to the span
    when the block exits normally.
    """
    started = time.monotonic()
    result_attrs: dict[str, Any] = {}
    try:
        if not _context.enabled:
            yield result_attrs
            return

        import logfire

        with logfire.span(name, **(attributes or {})) as span:
            yield result_attrs
            for key, value in result_attrs.items():
                span.set_attribute(key, value)
    finally:
        logger.debug("Operation done | name=%s elapsed=%.2fs", name, time.monotonic() - started)

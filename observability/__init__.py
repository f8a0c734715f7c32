"""Logging and optional tracing for the notice board.

setup_logging:
    Console plus rotating file handlers, text or JSON, with run ids.

set_run_context / clear_context:
    Attach a run id to every log record of the current build.

setup_tracing / trace_operation:
    Optional Logfire spans (no-op when disabled or not installed).

Example:
    >>> from observability import setup_tracing, trace_operation
    >>> setup_tracing(enabled=True, service_name="noticeboard")
    >>> with trace_operation("evaluate_program", {"program": "jee-main"}):
    ...     pass
"""

from observability.logging import clear_context, set_run_context, setup_logging
from observability.tracing import TracingContext, setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
    "TracingContext",
]

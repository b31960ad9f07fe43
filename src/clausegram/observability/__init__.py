"""
Observability — Logging for clausegram.

Provides structured logging tagged with the identifier of the template
being compiled, parsed or drafted.
"""

from clausegram.observability.logging import (
    set_template_id,
    get_template_id,
    get_source_name,
    configure_logging,
    get_logger,
    LogContext,
    TemplateFilter,
    JSONFormatter,
    ReadableFormatter,
)

__all__ = [
    "set_template_id",
    "get_template_id",
    "get_source_name",
    "configure_logging",
    "get_logger",
    "LogContext",
    "TemplateFilter",
    "JSONFormatter",
    "ReadableFormatter",
]

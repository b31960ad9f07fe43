"""
Logging — Structured logging with template identifier propagation.

Every record emitted while a template is being compiled, parsed or
drafted carries that template's identifier and, when known, the name of
the source file being read (a sample, the grammar template). Records
logged with ``extra={"error": e}`` for a ClausegramError also carry the
error's location, so a failing compile can be traced to its line.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from clausegram.config import DEFAULT_CONFIG, ClausegramConfig
from clausegram.errors import ClausegramError


_template_id: ContextVar[str | None] = ContextVar("template_id", default=None)
_source_name: ContextVar[str | None] = ContextVar("source_name", default=None)


def set_template_id(template_id: str | None) -> None:
    """Set template identifier for current context."""
    _template_id.set(str(template_id) if template_id else None)


def get_template_id() -> str | None:
    """Get template identifier from current context."""
    return _template_id.get()


def get_source_name() -> str | None:
    """Name of the file being compiled or parsed, if any."""
    return _source_name.get()


def _error_of(record: logging.LogRecord) -> ClausegramError | None:
    error = getattr(record, "error", None)
    return error if isinstance(error, ClausegramError) else None


class TemplateFilter(logging.Filter):
    """Stamps template_id and source_name onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.template_id = get_template_id() or "-"
        error = _error_of(record)
        # The failing file wins over the one in context
        if error is not None and error.file_name:
            record.source_name = error.file_name
        else:
            record.source_name = get_source_name()
        return True


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON for structured logging.

    Clausegram errors attached to a record are serialized with to_dict().
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "template_id": getattr(record, "template_id", None),
            "source_name": getattr(record, "source_name", None),
        }

        error = _error_of(record)
        if error is not None:
            log_data["error"] = error.to_dict()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    INFO    [supplyagreement@1.2.0 text/grammar.tem.md:3:9] clausegram.compiler: ...
    """

    def format(self, record: logging.LogRecord) -> str:
        where = getattr(record, "template_id", "-")
        source_name = getattr(record, "source_name", None)
        if source_name:
            where += f" {source_name}"
            error = _error_of(record)
            if error is not None and error.location is not None:
                where += f":{error.location.line}:{error.location.column}"

        base = f"{record.levelname:<7} [{where}] {record.name}: {record.getMessage()}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


def configure_logging(
    level: int | str | None = None,
    json_format: bool = False,
    stream: Any = None,
    config: ClausegramConfig = DEFAULT_CONFIG,
) -> None:
    """
    Configure clausegram logging.

    Args:
        level: Logging level (number or name such as "DEBUG"); defaults to config.log_level
        json_format: Use JSON format (for production)
        stream: Output stream (default: stderr)
        config: Configuration supplying the default level
    """
    if level is None:
        level = config.log_level

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(TemplateFilter())

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ReadableFormatter())

    root = logging.getLogger("clausegram")
    root.setLevel(level.upper() if isinstance(level, str) else level)
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a clausegram component."""
    return logging.getLogger(f"clausegram.{name}")


class LogContext:
    """
    Context manager tagging records with a template and, optionally, a source file.

    Usage:
        with LogContext(template.identifier, "sample.txt"):
            logger.info("Parsing")  # Includes template_id and source_name
    """

    def __init__(self, template_id: str | None, source_name: str | None = None):
        self.template_id = template_id
        self.source_name = source_name
        self._tokens = None

    def __enter__(self):
        self._tokens = (
            _template_id.set(str(self.template_id) if self.template_id else None),
            _source_name.set(self.source_name),
        )
        return self

    def __exit__(self, *args):
        if self._tokens is not None:
            template_token, source_token = self._tokens
            _source_name.reset(source_token)
            _template_id.reset(template_token)

"""
Errors — Exception taxonomy for template compilation, parsing and drafting.

Every error carries enough location information to underline the
offending span of the source document it was raised against.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FileLocation:
    """1-based position of a span inside a source file."""
    line: int
    column: int
    end_line: int | None = None
    end_column: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": {"line": self.line, "column": self.column},
            "end": {
                "line": self.end_line if self.end_line is not None else self.line,
                "column": self.end_column if self.end_column is not None else self.column,
            },
        }


class ClausegramError(Exception):
    """
    Base class for all clausegram errors.

    Attributes:
        message: Human-readable description
        file_name: Source file the error refers to, if known
        location: Position inside that file, if known
    """

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        location: FileLocation | None = None,
    ):
        self.message = message
        self.file_name = file_name
        self.location = location
        super().__init__(self._render())

    def _render(self) -> str:
        if self.location is None and self.file_name is None:
            return self.message
        parts = []
        if self.file_name:
            parts.append(f"file {self.file_name}")
        if self.location is not None:
            parts.append(f"line {self.location.line} col {self.location.column}")
        return f"{self.message} (at {' '.join(parts)})"

    @property
    def line(self) -> int | None:
        return self.location.line if self.location else None

    @property
    def column(self) -> int | None:
        return self.location.column if self.location else None

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "file_name": self.file_name,
            "location": self.location.to_dict() if self.location else None,
        }


class StructuralError(ClausegramError):
    """
    The annotated template does not fit its schema.

    Raised for bindings to undeclared fields, conditionals over non-boolean
    fields, formats requested for unsupported types and unknown node tags.
    """
    pass


class FormatError(StructuralError):
    """A date, amount or monetary format string cannot be understood."""
    pass


class GrammarSyntaxError(ClausegramError):
    """Grammar source is malformed or references undefined rules."""

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        location: FileLocation | None = None,
        details: str | None = None,
    ):
        self.details = details
        super().__init__(message, file_name, location)


class IllegalStateError(ClausegramError):
    """An operation was called before the object was ready for it."""
    pass


class ParseFailure(ClausegramError):
    """Input text has no interpretation under the grammar."""

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        location: FileLocation | None = None,
        expected: list[str] | None = None,
    ):
        self.expected = expected or []
        super().__init__(message, file_name, location)


class AmbiguousParse(ClausegramError):
    """Input text has more than one interpretation under the grammar."""

    def __init__(
        self,
        message: str,
        file_name: str | None = None,
        location: FileLocation | None = None,
        interpretations: int = 2,
    ):
        self.interpretations = interpretations
        super().__init__(message, file_name, location)


class ValidationError(ClausegramError):
    """Data does not conform to its schema type."""

    def __init__(
        self,
        message: str,
        data: Any = None,
        errors: list[str] | None = None,
        file_name: str | None = None,
    ):
        self.data = data
        self.errors = errors or []
        super().__init__(message, file_name)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["data"] = self.data
        result["errors"] = self.errors
        return result


class UnsupportedFormatError(ClausegramError):
    """A draft output format that is not supported was requested."""
    pass


class ModelError(ClausegramError):
    """A schema type is missing, ambiguous or malformed."""
    pass


class TemplateLoadError(ClausegramError):
    """A template package or archive is incomplete or inconsistent."""
    pass

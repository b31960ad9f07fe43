"""
clausegram — Compile annotated contract templates into grammars.

A template's annotated text is compiled once into a grammar, which then
works in both directions: parsing contract text into data validated
against the template model, and drafting text from data.
"""

from clausegram.config import ClausegramConfig, DEFAULT_CONFIG
from clausegram.errors import (
    ClausegramError,
    StructuralError,
    FormatError,
    GrammarSyntaxError,
    IllegalStateError,
    ParseFailure,
    AmbiguousParse,
    ValidationError,
    UnsupportedFormatError,
    ModelError,
    TemplateLoadError,
)
from clausegram.templates import Template, Clause, Contract, DraftOptions

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Configuration
    "ClausegramConfig",
    "DEFAULT_CONFIG",
    # Errors
    "ClausegramError",
    "StructuralError",
    "FormatError",
    "GrammarSyntaxError",
    "IllegalStateError",
    "ParseFailure",
    "AmbiguousParse",
    "ValidationError",
    "UnsupportedFormatError",
    "ModelError",
    "TemplateLoadError",
    # Templates
    "Template",
    "Clause",
    "Contract",
    "DraftOptions",
]
